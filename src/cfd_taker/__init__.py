"""CFD taker - client-side decision core of a CFD trading terminal."""

__version__ = "0.1.0"

# Re-export submodules for convenient access
from cfd_taker import core, data, execution, notifications, trading

__all__ = [
    "__version__",
    "core",
    "data",
    "execution",
    "notifications",
    "trading",
]

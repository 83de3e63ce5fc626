"""Execution module - daemon REST calls and order submission."""

from cfd_taker.execution.client import DaemonRestClient
from cfd_taker.execution.submission import OrderSubmission, SingleFlightGate, SubmissionResult
from cfd_taker.execution.wallet import WalletOperations

__all__ = [
    "DaemonRestClient",
    "OrderSubmission",
    "SingleFlightGate",
    "SubmissionResult",
    "WalletOperations",
]

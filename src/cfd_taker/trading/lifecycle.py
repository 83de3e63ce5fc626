"""CFD lifecycle grouping."""

from collections.abc import Iterable

from cfd_taker.core.types import CfdState, CfdStateGroup
from cfd_taker.data.models import Cfd

TERMINAL_STATES: frozenset[CfdState] = frozenset(
    {
        CfdState.CLOSED,
        CfdState.REJECTED,
        CfdState.REFUNDED,
        CfdState.SETUP_FAILED,
    }
)

STATE_GROUPS: dict[CfdState, CfdStateGroup] = {
    state: CfdStateGroup.CLOSED if state in TERMINAL_STATES else CfdStateGroup.OPEN
    for state in CfdState
}


def state_group(state: CfdState) -> CfdStateGroup:
    """Map a lifecycle state to its coarse group."""
    return STATE_GROUPS[state]


def is_closed(cfd: Cfd) -> bool:
    return state_group(cfd.state) == CfdStateGroup.CLOSED


def partition_cfds(cfds: Iterable[Cfd]) -> tuple[list[Cfd], list[Cfd]]:
    """Split CFDs into (open, closed), keeping feed order within each list."""
    open_cfds: list[Cfd] = []
    closed_cfds: list[Cfd] = []
    for cfd in cfds:
        (closed_cfds if is_closed(cfd) else open_cfds).append(cfd)
    return open_cfds, closed_cfds

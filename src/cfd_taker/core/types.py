"""Global type definitions."""

from enum import Enum


class Side(str, Enum):
    """Taker position side."""

    LONG = "long"
    SHORT = "short"


class Topic(str, Enum):
    """Named topics of the daemon's server-sent feed."""

    WALLET = "wallet"
    LONG_OFFER = "long_offer"
    SHORT_OFFER = "short_offer"
    IDENTITY = "identity"
    CFDS = "cfds"
    MAKER_STATUS = "maker_status"


class CfdState(str, Enum):
    """Lifecycle phase of a CFD as reported by the daemon."""

    PENDING_SETUP = "PendingSetup"
    CONTRACT_SETUP = "ContractSetup"
    REJECTED = "Rejected"
    PENDING_OPEN = "PendingOpen"
    OPEN = "Open"
    PENDING_COMMIT = "PendingCommit"
    PENDING_CET = "PendingCet"
    PENDING_CLOSE = "PendingClose"
    OPEN_COMMITTED = "OpenCommitted"
    INCOMING_SETTLEMENT_PROPOSAL = "IncomingSettlementProposal"
    OUTGOING_SETTLEMENT_PROPOSAL = "OutgoingSettlementProposal"
    INCOMING_ROLLOVER_PROPOSAL = "IncomingRolloverProposal"
    OUTGOING_ROLLOVER_PROPOSAL = "OutgoingRolloverProposal"
    CLOSED = "Closed"
    PENDING_REFUND = "PendingRefund"
    REFUNDED = "Refunded"
    SETUP_FAILED = "SetupFailed"


class CfdStateGroup(str, Enum):
    """Coarse grouping used to split open positions from history."""

    OPEN = "open"
    CLOSED = "closed"


class CfdAction(str, Enum):
    """Actions the daemon can perform on a CFD."""

    ACCEPT_ORDER = "accept_order"
    REJECT_ORDER = "reject_order"
    COMMIT = "commit"
    SETTLE = "settle"
    ACCEPT_SETTLEMENT = "accept_settlement"
    REJECT_SETTLEMENT = "reject_settlement"
    ACCEPT_ROLLOVER = "accept_rollover"
    REJECT_ROLLOVER = "reject_rollover"


class NotificationStatus(str, Enum):
    """Severity of a user-facing notification."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

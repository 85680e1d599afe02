"""Common constants."""

import enum


class PartnershipStatus(str, enum.Enum):
    """Student pairing state."""
    NONE = "none"
    PENDING_SENT = "pending_sent"
    PENDING_RECEIVED = "pending_received"
    PAIRED = "paired"


class RequestStatus(str, enum.Enum):
    """Partnership request lifecycle."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class RequestAction(str, enum.Enum):
    """Answer the addressed student gives to a request."""
    ACCEPT = "accept"
    REJECT = "reject"


class RequestDirection(str, enum.Enum):
    """Which side of a request a listing is for."""
    INCOMING = "incoming"
    OUTGOING = "outgoing"
    ALL = "all"


class ApplicationStatus(str, enum.Enum):
    """Application review state."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    REVISION_REQUESTED = "revision_requested"


class AvailabilityStatus(str, enum.Enum):
    """Supervisor availability as set on the profile."""
    AVAILABLE = "available"
    LIMITED = "limited"
    UNAVAILABLE = "unavailable"


# Statuses a supervisor may set through a decision
DECISION_STATUSES = {
    ApplicationStatus.APPROVED,
    ApplicationStatus.REJECTED,
    ApplicationStatus.REVISION_REQUESTED,
}

# Applications in these statuses block a second application to the same supervisor
ACTIVE_APPLICATION_STATUSES = {
    ApplicationStatus.PENDING,
    ApplicationStatus.APPROVED,
    ApplicationStatus.REVISION_REQUESTED,
}

"""Status enumerations and the transitions allowed between them."""

from enum import StrEnum
from typing import Final

from .exceptions import InvalidStatusTransitionError


class LeaseRequestStatus(StrEnum):
    """Workflow states of a lease request."""

    AWAITING_LESSOR_RESPONSE = "awaiting lessor response"
    AWAITING_LESSEE_RESPONSE = "awaiting lessee response"
    AWAITING_PAYMENT = "awaiting payment"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    CANCELLED = "cancelled"


class LeaseStatus(StrEnum):
    """States of a realized lease."""

    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


_OPEN_REQUEST_TARGETS: Final = frozenset(
    {
        LeaseRequestStatus.AWAITING_PAYMENT,
        LeaseRequestStatus.ACCEPTED,
        LeaseRequestStatus.DECLINED,
        LeaseRequestStatus.CANCELLED,
    }
)

LEASE_REQUEST_TRANSITIONS: Final[
    dict[LeaseRequestStatus, frozenset[LeaseRequestStatus]]
] = {
    LeaseRequestStatus.AWAITING_LESSOR_RESPONSE: _OPEN_REQUEST_TARGETS
    | {LeaseRequestStatus.AWAITING_LESSEE_RESPONSE},
    LeaseRequestStatus.AWAITING_LESSEE_RESPONSE: _OPEN_REQUEST_TARGETS
    | {LeaseRequestStatus.AWAITING_LESSOR_RESPONSE},
    LeaseRequestStatus.AWAITING_PAYMENT: frozenset(
        {
            LeaseRequestStatus.ACCEPTED,
            LeaseRequestStatus.DECLINED,
            LeaseRequestStatus.CANCELLED,
        }
    ),
    LeaseRequestStatus.ACCEPTED: frozenset(),
    LeaseRequestStatus.DECLINED: frozenset(),
    LeaseRequestStatus.CANCELLED: frozenset(),
}

LEASE_TRANSITIONS: Final[dict[LeaseStatus, frozenset[LeaseStatus]]] = {
    LeaseStatus.ACTIVE: frozenset({LeaseStatus.COMPLETED, LeaseStatus.CANCELLED}),
    LeaseStatus.COMPLETED: frozenset(),
    LeaseStatus.CANCELLED: frozenset(),
}

# Statuses a requester may set on their own request without vendor rights
REQUESTER_SETTABLE_STATUSES: Final = frozenset(
    {LeaseRequestStatus.CANCELLED, LeaseRequestStatus.AWAITING_LESSOR_RESPONSE}
)


def ensure_lease_request_transition(
    current: LeaseRequestStatus, target: LeaseRequestStatus
) -> None:
    """Raise if a lease request may not move from current to target.

    Keeping the current status is not a transition and always passes.
    """
    if current == target:
        return
    if target not in LEASE_REQUEST_TRANSITIONS[current]:
        raise InvalidStatusTransitionError(current, target, "lease request")


def ensure_lease_transition(current: LeaseStatus, target: LeaseStatus) -> None:
    """Raise if a lease may not move from current to target."""
    if current == target:
        return
    if target not in LEASE_TRANSITIONS[current]:
        raise InvalidStatusTransitionError(current, target, "lease")

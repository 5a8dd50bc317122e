from .order_state import (
    ALLOWED_ROLES,
    NEXT_STATUS,
    IllegalTransition,
    OrderLifecycle,
    UnauthorizedActor,
    check_transition,
)
from .driver_state import (
    AssignmentStateException,
    accept_assignment,
    complete_assignment,
    decline_assignment,
    revoke_assignment,
)

__all__ = [
    "ALLOWED_ROLES",
    "NEXT_STATUS",
    "IllegalTransition",
    "OrderLifecycle",
    "UnauthorizedActor",
    "check_transition",
    "AssignmentStateException",
    "accept_assignment",
    "complete_assignment",
    "decline_assignment",
    "revoke_assignment",
]

#Expose the high-level pipeline pieces:
#Order lifecycle (status state machine)
#Dispatch coordinator (the "one call" entry point for driver offers)
#Events + notifiers

from .notifications import AssignmentChanged, LoggingNotifier, OrderStatusChanged, RecordingNotifier
from .state_machines.order_state import IllegalTransition, OrderLifecycle, UnauthorizedActor
from .dispatcher import AssignmentConflict, DispatchCoordinator, NoDriverAvailable

__all__ = [
    "AssignmentChanged",
    "LoggingNotifier",
    "OrderStatusChanged",
    "RecordingNotifier",
    "IllegalTransition",
    "OrderLifecycle",
    "UnauthorizedActor",
    "AssignmentConflict",
    "DispatchCoordinator",
    "NoDriverAvailable",
]

from dataclasses import replace
from datetime import datetime

from drivers.models import AssignmentStatus, DriverAssignment


class AssignmentStateException(Exception):
    """Raised when an invalid assignment transition is attempted."""
    pass


# offered -> accepted | declined | revoked, accepted -> completed | revoked
ASSIGNMENT_TRANSITIONS = {
    AssignmentStatus.OFFERED: {AssignmentStatus.ACCEPTED, AssignmentStatus.DECLINED, AssignmentStatus.REVOKED},
    AssignmentStatus.ACCEPTED: {AssignmentStatus.COMPLETED, AssignmentStatus.REVOKED},
}


def _move(assignment: DriverAssignment, target: AssignmentStatus, when: datetime) -> DriverAssignment:
    if target not in ASSIGNMENT_TRANSITIONS.get(assignment.status, set()):
        raise AssignmentStateException(
            f"Assignment {assignment.id} cannot go from {assignment.status.value} to {target.value}"
        )
    # Because DriverAssignment is a frozen dataclass, we must return a new instance via replace
    return replace(assignment, status=target, responded_at=when)


def accept_assignment(assignment: DriverAssignment, when: datetime) -> DriverAssignment:
    """
    Called when the offered driver hits "Accept".
    The ranked tail is no longer needed once someone has the order.
    """
    return replace(_move(assignment, AssignmentStatus.ACCEPTED, when), remaining_candidates=())


def decline_assignment(assignment: DriverAssignment, when: datetime) -> DriverAssignment:
    """
    Called when the offered driver declines. remaining_candidates is kept on the
    record so the dispatcher can offer the next driver.
    """
    return _move(assignment, AssignmentStatus.DECLINED, when)


def revoke_assignment(assignment: DriverAssignment, when: datetime) -> DriverAssignment:
    """
    Superseded by an admin reassign or an order cancellation. Never deleted (audit trail).
    """
    return _move(assignment, AssignmentStatus.REVOKED, when)


def complete_assignment(assignment: DriverAssignment, when: datetime) -> DriverAssignment:
    return _move(assignment, AssignmentStatus.COMPLETED, when)

"""
Drivers domain package.

Public API:
- Domain models: Driver, DriverStatus, DriverAssignment, AssignmentStatus
- DriverRegistry (live fleet view)
- Selection: filter_eligible_drivers, rank_drivers_by_pickup_distance, nearest_available_driver
"""

from .models import AssignmentStatus, Driver, DriverAssignment, DriverStatus
from .policy import DispatchPolicy, default_dispatch_policy, dispatch_policy_from_env
from .registry import DriverNotFound, DriverRegistry
from .selection import (
    RankedDriver,
    filter_eligible_drivers,
    nearest_available_driver,
    rank_drivers_by_pickup_distance,
)

__all__ = [
    "AssignmentStatus",
    "Driver",
    "DriverAssignment",
    "DriverStatus",
    "DispatchPolicy",
    "default_dispatch_policy",
    "dispatch_policy_from_env",
    "DriverNotFound",
    "DriverRegistry",
    "RankedDriver",
    "filter_eligible_drivers",
    "nearest_available_driver",
    "rank_drivers_by_pickup_distance",
]

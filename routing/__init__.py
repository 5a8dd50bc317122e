#Marks routing as a package.
#Re-exports the public API (value types, GeoValidator, DistanceEngine,
#RouteOptimizer, OSRMClient, ETA policy) so other modules import from routing
#without knowing internal file names.
#No business logic.

from .models import Coordinate, DistanceResult, DistanceStatus, Route, OptimizedRoute
from .geofence import GeoValidator, ServiceRegion, InvalidCoordinate, OutOfServiceArea, philippines_region
from .osrm_client import OSRMClient, OSRMError
from .matrix_adapter import DistanceCache
from .distance_engine import DistanceEngine, LimitExceeded, DistanceUnavailable, haversine_meters
from .route_service import RouteOptimizer
from .eta_service import EtaPolicy, estimate_eta_minutes
from .policy import RoutingPolicy, default_routing_policy, routing_policy_from_env

__all__ = [
    "Coordinate",
    "DistanceResult",
    "DistanceStatus",
    "Route",
    "OptimizedRoute",
    "GeoValidator",
    "ServiceRegion",
    "InvalidCoordinate",
    "OutOfServiceArea",
    "philippines_region",
    "OSRMClient",
    "OSRMError",
    "DistanceCache",
    "DistanceEngine",
    "LimitExceeded",
    "DistanceUnavailable",
    "haversine_meters",
    "RouteOptimizer",
    "EtaPolicy",
    "estimate_eta_minutes",
    "RoutingPolicy",
    "default_routing_policy",
    "routing_policy_from_env",
]

#Purpose: The OSRM “adapter/client”.
#Sole responsibility: talk to OSRM via HTTP and return normalized outputs.
#Encapsulates OSRM-specific details:
#coordinate formatting (lng,lat)
#URL construction (/route, /table)
#timeouts and error handling
#parsing response JSON into plain dicts
#It should not contain fallback, dispatch rules or pricing (see distance_engine.py).

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional, Sequence

import requests
from dotenv import load_dotenv

from routing.models import Coordinate
from routing.policy import RoutingPolicy

# Read OSRM base URL from environment
# Example in .env:
# OSRM_BASE_URL=http://router.project-osrm.org
load_dotenv()

logger = logging.getLogger(__name__)


class OSRMError(Exception):
    """Raised for OSRM error codes and transport failures."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class OSRMClient:
    """
    OSRM Adapter / Client

    Sole responsibility:
    - Talk to OSRM via HTTP
    - Convert internal Coordinate(lat, lng) → OSRM "lng,lat"
    - Return normalized outputs

    """
    def __init__(self, base_url: Optional[str] = None, profile: str = "driving", timeout: float = 4.0,
                 session: Optional[requests.Session] = None):
        self.base_url = (base_url or os.getenv("OSRM_BASE_URL") or "").rstrip("/")
        self.timeout = timeout #seconds to wait for OSRM before giving up (no retry)
        self.profile = profile #driving, walking, cycling
        self.session = session or requests.Session()

        if not self.base_url:
            raise ValueError("OSRM base URL not set. Pass base_url or set OSRM_BASE_URL in the .env file.")

    @classmethod
    def from_policy(cls, policy: RoutingPolicy, base_url: Optional[str] = None,
                    session: Optional[requests.Session] = None) -> "OSRMClient":
        """Client whose timeout and profile come from the routing policy."""
        return cls(base_url=base_url, profile=policy.profile,
                   timeout=policy.provider_timeout_seconds, session=session)

    #----------------
    # Internal helpers
    #----------------
    def format_coordinates(self, coords: Sequence[Coordinate]) -> str:
        """Convert coordinates to OSRM format 'lng,lat;lng,lat;...'"""
        return ';'.join(f"{c.lng},{c.lat}" for c in coords)

    def _get(self, url: str, params: Dict[str, str]) -> Dict[str, Any]:
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.Timeout as exc:
            raise OSRMError(f"OSRM timed out after {self.timeout}s", code="Timeout") from exc
        except requests.RequestException as exc:
            raise OSRMError(f"OSRM request failed: {exc}", code="TransportError") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise OSRMError(f"OSRM returned non-JSON (HTTP {response.status_code})",
                            code="BadResponse") from exc

        #validating OSRM response
        code = data.get("code")
        if code != "Ok":
            raise OSRMError(f"OSRM error: {data.get('message', 'Unknown error')}", code=code)
        return data

    #----------------
    # Public methods for route, table
    #----------------
    def compute_route(self, coordinates: Sequence[Coordinate], geometry: bool = False) -> Dict[str, Any]:
        """
        calls the OSRM /route endpoint with the given coordinates (in visiting order)

        Returns:
            {
                "distance": float, # meters
                "duration": float, # seconds
                "legs": [{"distance": float, "duration": float}, ...],
                "geometry": [Coordinate, ...], # only when geometry=True
            }
        """
        if len(coordinates) < 2:
            raise ValueError("At least two coordinates are required to compute a route.")

        url = f"{self.base_url}/route/v1/{self.profile}/{self.format_coordinates(coordinates)}"
        params = {"overview": "full" if geometry else "false"}
        if geometry:
            params["geometries"] = "geojson"

        data = self._get(url, params)
        routes = data.get("routes") or []
        if not routes:
            raise OSRMError("OSRM returned no routes", code="NoRoute")
        route = routes[0] #take the first route (OSRM may return alternatives)

        result: Dict[str, Any] = {
            "distance": route["distance"],
            "duration": route["duration"],
            "legs": [{"distance": leg["distance"], "duration": leg["duration"]} for leg in route.get("legs", [])],
        }
        if geometry:
            points = (route.get("geometry") or {}).get("coordinates", [])
            # geojson is [lng, lat]
            result["geometry"] = [Coordinate(lat=point[1], lng=point[0]) for point in points]
        return result

    #----------------
    # table service (batch routing)
    #----------------
    def compute_table(self, sources: Sequence[Coordinate],
                      destinations: Sequence[Coordinate]) -> Dict[str, List[List[Optional[float]]]]:
        """
        calls OSRM /table endpoint.

        returns :
        {
            "durations": [[seconds | None, ...], ...],  # rows = sources, cols = destinations
            "distances": [[meters | None, ...], ...],
        }
        None cells mean OSRM found no route for that pair.
        """
        if not sources or not destinations:
            return {'durations': [], 'distances': []}

        coordinates = self.format_coordinates(list(sources) + list(destinations))
        params = {
            "sources": ";".join(str(i) for i in range(len(sources))),
            "destinations": ";".join(str(i) for i in range(len(sources), len(sources) + len(destinations))),
            "annotations": "duration,distance",
        }
        url = f"{self.base_url}/table/v1/{self.profile}/{coordinates}"

        data = self._get(url, params)
        logger.debug("OSRM table %sx%s ok", len(sources), len(destinations))
        return {
            "durations": data.get("durations", []),
            "distances": data.get("distances", []),
        }

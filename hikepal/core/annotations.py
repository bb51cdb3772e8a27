import asyncio
import aiohttp
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from hikepal.config import settings
from hikepal.core.errors import SourceRejected, SourceUnreachable
from hikepal.core.geofencing import get_nearby_annotations, is_within_hazard
from hikepal.models.annotation import FacilityRow, HazardZoneRow
from hikepal.models.geo import (
    Annotation,
    Coordinate,
    Facility,
    FacilityType,
    HazardType,
    HazardZone,
)

logger = logging.getLogger(__name__)

# External facility type -> FacilityType; anything else becomes a generic marker
FACILITY_TYPES = {
    "water_station": FacilityType.WATER,
    "toilet": FacilityType.TOILET,
    "shelter": FacilityType.SHELTER,
}


@dataclass
class SourcePayload:
    facilities: List[Dict[str, Any]] = field(default_factory=list)
    hazards: List[Dict[str, Any]] = field(default_factory=list)


def facility_from_row(row: FacilityRow) -> Facility:
    return Facility(
        id=f"fac-{row.id}",
        position=Coordinate(row.latitude, row.longitude),
        facility_type=FACILITY_TYPES.get(row.type, FacilityType.MARKER),
        label=row.name,
    )


def hazard_from_row(row: HazardZoneRow) -> HazardZone:
    try:
        hazard_type = HazardType((row.type or "").strip().lower())
    except ValueError:
        hazard_type = HazardType.OTHER
    return HazardZone(
        id=f"risk-{row.id}",
        position=Coordinate(row.latitude, row.longitude),
        hazard_type=hazard_type,
        radius_meters=round(row.radius) if row.radius is not None else 0,
        message=row.message or "",
        route_id=str(row.route_id) if row.route_id is not None else None,
    )


def parse_payload(payload: SourcePayload) -> FrozenSet[Annotation]:
    """
    Validate raw rows and map them to annotations.

    Missing types and radii fall back to defaults; a row without usable
    coordinates rejects the whole payload.
    """
    try:
        facilities = [facility_from_row(FacilityRow.model_validate(r)) for r in payload.facilities]
        hazards = [hazard_from_row(HazardZoneRow.model_validate(r)) for r in payload.hazards]
    except (ValidationError, TypeError, ValueError) as e:
        raise SourceRejected(f"Malformed annotation rows: {e}") from e
    return frozenset(facilities + hazards)


class AnnotationSource(ABC):
    """External facilities/hazards query interface"""

    @abstractmethod
    async def fetch(self) -> SourcePayload:
        pass


class StaticAnnotationSource(AnnotationSource):
    def __init__(
        self,
        facilities: Sequence[Dict[str, Any]] = (),
        hazards: Sequence[Dict[str, Any]] = ()
    ):
        self.payload = SourcePayload(list(facilities), list(hazards))

    async def fetch(self) -> SourcePayload:
        return self.payload


class SupabaseAnnotationSource(AnnotationSource):
    """Reads the ``facilities`` and ``risk_zones`` tables over PostgREST"""

    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None
    ):
        self.url = (url if url is not None else settings.SUPABASE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.SUPABASE_ANON_KEY
        self.timeout = timeout if timeout is not None else settings.ANNOTATION_TIMEOUT_SECONDS

    @property
    def configured(self) -> bool:
        return bool(self.url) and "YOUR_SUPABASE" not in self.url and self.url.startswith("http")

    async def fetch(self) -> SourcePayload:
        if not self.configured:
            raise SourceUnreachable("Annotation source is not configured (set SUPABASE_URL and SUPABASE_ANON_KEY)")

        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }
        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout, headers=headers) as session:
                facilities, hazards = await asyncio.gather(
                    self._select(session, "facilities"),
                    self._select(session, "risk_zones"),
                )
        except asyncio.TimeoutError as e:
            raise SourceUnreachable("Annotation source timed out") from e
        except aiohttp.ClientError as e:
            raise SourceUnreachable(f"Annotation source unreachable: {e}") from e

        return SourcePayload(facilities, hazards)

    async def _select(self, session: aiohttp.ClientSession, table: str) -> List[Dict[str, Any]]:
        async with session.get(f"{self.url}/rest/v1/{table}", params={"select": "*"}) as response:
            if response.status >= 500:
                raise SourceUnreachable(f"{table}: server error {response.status}")
            if response.status >= 400:
                response_text = await response.text()
                raise SourceRejected(f"{table}: {response.status} - {response_text}")
            try:
                rows = await response.json()
            except (aiohttp.ContentTypeError, ValueError) as e:
                raise SourceRejected(f"{table}: response is not JSON") from e

        if not isinstance(rows, list):
            raise SourceRejected(f"{table}: expected a list of rows")
        return rows


class AnnotationStore:
    """
    Read-mostly cache of map annotations.

    ``load`` is the only writer and is serialised; the snapshot is replaced
    in one assignment, so readers see either the old or the new set.
    """

    def __init__(self, source: AnnotationSource):
        self.source = source
        self._snapshot: FrozenSet[Annotation] = frozenset()
        self._lock = asyncio.Lock()
        self.loaded = False

    async def load(self) -> FrozenSet[Annotation]:
        """
        Refresh from the source.

        Raises SourceUnreachable or SourceRejected on failure; the previous
        snapshot is left untouched in that case (and if the load is cancelled).
        """
        async with self._lock:
            payload = await self.source.fetch()
            annotations = parse_payload(payload)
            self._snapshot = annotations
            self.loaded = True

        logger.info(
            f"Loaded {len(self.facilities())} facilities and "
            f"{len(self.hazards())} hazard zones"
        )
        return annotations

    def current(self) -> FrozenSet[Annotation]:
        return self._snapshot

    def facilities(self) -> Tuple[Facility, ...]:
        return tuple(sorted(
            (a for a in self._snapshot if isinstance(a, Facility)),
            key=lambda a: a.id
        ))

    def hazards(self) -> Tuple[HazardZone, ...]:
        return tuple(sorted(
            (a for a in self._snapshot if isinstance(a, HazardZone)),
            key=lambda a: a.id
        ))

    def hazards_at(self, coordinate: Coordinate) -> List[HazardZone]:
        """Hazard zones whose radius covers the given point"""
        return [zone for zone in self.hazards() if is_within_hazard(coordinate, zone)]

    def nearby(self, coordinate: Coordinate, radius_m: float = 500) -> List[Tuple[Annotation, float]]:
        return get_nearby_annotations(coordinate, self._snapshot, radius_m)

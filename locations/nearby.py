import logging
from dataclasses import dataclass, field

from django.db.models import Avg, Count

from .geo import DEFAULT_RADIUS_KM, haversine_expression, haversine_km
from .models import Location, Rating, Visit

logger = logging.getLogger(__name__)

SCAN = "scan"
QUERY = "query"


@dataclass
class NearbyResult:
    locations: list = field(default_factory=list)
    degraded: bool = False


def _scan(lat, lon, radius_km):
    matches = []
    for location in Location.objects.order_by("id"):
        distance = haversine_km(lat, lon, location.latitude, location.longitude)
        if distance <= radius_km:
            location.distance = distance
            matches.append(location)

    # list.sort is stable, equal distances stay in id order
    matches.sort(key=lambda loc: loc.distance)
    return matches


def _query(lat, lon, radius_km):
    queryset = (
        Location.objects
        .annotate(distance=haversine_expression(lat, lon))
        .filter(distance__lte=radius_km)
        .order_by("distance", "id")
    )
    return list(queryset)


STRATEGIES = {
    SCAN: _scan,
    QUERY: _query,
}


def _attach_stats(locations):
    ids = [loc.id for loc in locations]
    visit_counts = dict(
        Visit.objects.filter(location_id__in=ids)
        .values("location_id")
        .annotate(n=Count("id"))
        .values_list("location_id", "n")
    )
    averages = dict(
        Rating.objects.filter(location_id__in=ids)
        .values("location_id")
        .annotate(avg=Avg("rating"))
        .values_list("location_id", "avg")
    )
    for location in locations:
        location.visit_count = visit_counts.get(location.id, 0)
        location.average_rating = averages.get(location.id) or 0


def find_nearby(lat, lon, radius_km=DEFAULT_RADIUS_KM, strategy=SCAN):
    """Locations within ``radius_km`` of (lat, lon), closest first.

    Each returned location carries ``distance``, ``visit_count`` and
    ``average_rating`` attributes. Any failure is logged and reported as an
    empty, degraded result instead of being raised.
    """
    logger.info("Searching for locations lat=%s lon=%s radius=%s strategy=%s", lat, lon, radius_km, strategy)
    try:
        resolve = STRATEGIES[strategy]
        locations = resolve(lat, lon, radius_km)
        _attach_stats(locations)
    except Exception:
        logger.exception("Failed to find nearby locations lat=%s lon=%s radius=%s", lat, lon, radius_km)
        return NearbyResult(degraded=True)

    logger.info("Locations found count=%d", len(locations))
    return NearbyResult(locations=locations)

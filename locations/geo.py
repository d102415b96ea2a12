"""Great-circle distance helpers shared by the nearby search and visit logging.

``haversine_km`` and ``haversine_expression`` evaluate the same formula in the
same operation order, so the in-process scan and the SQL filter agree.
"""
import math

from django.db.models import F, FloatField, Value
from django.db.models.functions import ASin, Cos, Least, Radians, Sin, Sqrt

EARTH_RADIUS_KM = 6371.0
VISIT_MERGE_RADIUS_KM = 0.05  # 50 meters

DEFAULT_RADIUS_KM = 5
MIN_RADIUS_KM = 0.001
MAX_RADIUS_KM = 100


def haversine_km(lat1, lon1, lat2, lon2):
    """Distance in kilometers between (lat1, lon1) and (lat2, lon2)."""
    if lat1 == lat2 and lon1 == lon2:
        return 0.0

    rlat1 = math.radians(lat1)
    rlat2 = math.radians(lat2)
    half_dlat = (rlat2 - rlat1) / 2.0
    half_dlon = (math.radians(lon2) - math.radians(lon1)) / 2.0

    a = (
        math.sin(half_dlat) * math.sin(half_dlat)
        + math.cos(rlat1) * math.cos(rlat2) * math.sin(half_dlon) * math.sin(half_dlon)
    )
    # rounding can push sqrt(a) a hair above 1 for antipodal points
    return 2.0 * EARTH_RADIUS_KM * math.asin(min(math.sqrt(a), 1.0))


def haversine_expression(lat, lon, lat_field="latitude", lon_field="longitude"):
    """ORM expression for the distance from (lat, lon) to each row, in km."""
    rlat = math.radians(lat)
    rlon = math.radians(lon)

    row_lat = Radians(F(lat_field))
    half_dlat = (row_lat - Value(rlat)) / Value(2.0)
    half_dlon = (Radians(F(lon_field)) - Value(rlon)) / Value(2.0)

    a = (
        Sin(half_dlat) * Sin(half_dlat)
        + Value(math.cos(rlat)) * Cos(row_lat) * Sin(half_dlon) * Sin(half_dlon)
    )
    return Value(2.0 * EARTH_RADIUS_KM) * ASin(
        Least(Sqrt(a), Value(1.0), output_field=FloatField()),
        output_field=FloatField(),
    )

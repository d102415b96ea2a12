import logging

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

PLACES_URL = "https://api.geoapify.com/v2/places"
DEFAULT_CATEGORIES = "catering,accommodation,tourism"


def search_establishments(lat, lon, radius_m=5000, categories=None, name=None, limit=20):
    """Establishments around (lat, lon) from the Geoapify places API.

    Never raises: upstream failures are reported in the ``error`` key with an
    empty result list so the map can keep rendering local locations.
    """
    base = {
        "count": 0,
        "establishments": [],
    }

    api_key = settings.GEOAPIFY_API_KEY
    if not api_key:
        base["error"] = "Geoapify API key is not configured"
        return base

    params = {
        "categories": categories or DEFAULT_CATEGORIES,
        "filter": f"circle:{lon},{lat},{radius_m}",
        "bias": f"proximity:{lon},{lat}",
        "limit": limit,
        "apiKey": api_key,
    }
    if name:
        params["name"] = name

    try:
        res = requests.get(PLACES_URL, params=params, timeout=8)
        if res.status_code != 200:
            base["error"] = f"Geoapify error: {res.status_code}"
            return base

        features = res.json().get("features") or []
    except requests.RequestException as e:
        logger.warning("Establishment search failed: %s", e)
        base["error"] = f"RequestException: {e}"
        return base
    except ValueError as e:
        base["error"] = f"Invalid response: {e}"
        return base

    establishments = []
    for f in features:
        if not isinstance(f, dict):
            continue

        props = f.get("properties", {})
        geom = f.get("geometry", {})
        coords = geom.get("coordinates") or [None, None]

        establishments.append(
            {
                "place_id": props.get("place_id"),
                "name": props.get("name") or props.get("formatted") or "Unnamed Place",
                "categories": props.get("categories", []),
                "address": (
                    props.get("address_line1")
                    or props.get("street")
                    or props.get("formatted")
                    or ""
                ),
                "lat": coords[1],
                "lon": coords[0],
                "distance": props.get("distance"),
            }
        )

    base["count"] = len(establishments)
    base["establishments"] = establishments
    return base

import logging

from django.db import IntegrityError, transaction

from .geo import VISIT_MERGE_RADIUS_KM, haversine_km
from .models import Location, Rating, Visit

logger = logging.getLogger(__name__)

USER_ADDED = "user_added"


def record_visit(location, visit_type, user_id=None):
    return Visit.objects.create(location=location, user_id=user_id, type=visit_type)


def find_location_near(lat, lon, radius_km=VISIT_MERGE_RADIUS_KM):
    """Closest stored location within ``radius_km``, or None."""
    closest = None
    closest_distance = None
    for location in Location.objects.order_by("id"):
        distance = haversine_km(lat, lon, location.latitude, location.longitude)
        if distance > radius_km:
            continue
        if closest is None or distance < closest_distance:
            closest, closest_distance = location, distance
    return closest


def log_visit(lat, lon, name, visit_type, user_id=None):
    """Attach a visit to the location at (lat, lon), creating it if needed.

    Coordinates within 50 meters of a stored location are merged into it,
    so repeated logging at the same spot never piles up duplicate pins.
    Returns ``(location, visit, created)``.

    The lookup and the insert are not serialized across requests: two
    concurrent first logs at a new spot can still create two locations.
    """
    with transaction.atomic():
        location = find_location_near(lat, lon)
        created = location is None
        if created:
            logger.info("No nearby location found, creating new one name=%r", name)
            location = Location.objects.create(
                name=name,
                latitude=lat,
                longitude=lon,
                type=USER_ADDED,
            )
        else:
            logger.info("Existing location found id=%s", location.id)

        visit = record_visit(location, visit_type, user_id)

    logger.info("Visit record created id=%s location=%s type=%s", visit.id, location.id, visit_type)
    return location, visit, created


def _apply(rating_row, rating, comment):
    rating_row.rating = rating
    # a missing or blank comment keeps whatever the user wrote before
    if comment:
        rating_row.comment = comment
    rating_row.save(update_fields=["rating", "comment", "updated_at"])
    return rating_row


def rate_location(location_id, rating, comment=None, *, user_id):
    """Create or update the user's rating for a location.

    Returns ``(rating_row, created)``. The (location, user) unique constraint
    decides who wins when two first ratings race; the loser updates the
    winner's row instead of failing.
    """
    location = Location.objects.get(pk=location_id)

    existing = Rating.objects.filter(location=location, user_id=user_id).first()
    if existing is not None:
        logger.info("Updating existing rating id=%s", existing.id)
        return _apply(existing, rating, comment), False

    try:
        with transaction.atomic():
            row = Rating.objects.create(
                location=location,
                user_id=user_id,
                rating=rating,
                comment=comment or None,
            )
    except IntegrityError:
        existing = Rating.objects.get(location=location, user_id=user_id)
        logger.info("Concurrent rating detected, updating id=%s", existing.id)
        return _apply(existing, rating, comment), False

    logger.info("New rating created id=%s", row.id)
    return row, True

from datetime import timedelta

from django.db.models import Avg, Count
from django.db.models.functions import TruncDate
from django.utils import timezone

from .models import Rating, Visit

TRAILING_DAYS = 30
RECENT_COMMENTS = 5


def _display_name(user):
    if user is None:
        return None
    return user.get_full_name() or user.get_username()


def visits_over_time(location, now=None):
    now = now or timezone.now()
    since = now - timedelta(days=TRAILING_DAYS)
    rows = (
        Visit.objects.filter(location=location, created_at__gte=since)
        .annotate(date=TruncDate("created_at"))
        .values("date")
        .annotate(count=Count("id"))
        .order_by("date")
    )
    return [{"date": row["date"].isoformat(), "count": row["count"]} for row in rows]


def recent_comments(location):
    rows = (
        Rating.objects.filter(location=location, comment__isnull=False)
        .exclude(comment="")
        .select_related("user")
        .order_by("-created_at", "-id")[:RECENT_COMMENTS]
    )
    return [
        {
            "id": row.id,
            "rating": row.rating,
            "comment": row.comment,
            "user": _display_name(row.user),
            "created_at": row.created_at,
        }
        for row in rows
    ]


def get_analytics(location, now=None):
    """Visit and rating statistics for one location, recomputed on every call."""
    visits = Visit.objects.filter(location=location)
    ratings = Rating.objects.filter(location=location)

    visits_by_type = dict(
        visits.values("type").annotate(count=Count("id")).order_by("type").values_list("type", "count")
    )
    rating_distribution = dict(
        ratings.values("rating").annotate(count=Count("id")).order_by("rating").values_list("rating", "count")
    )
    average = ratings.aggregate(avg=Avg("rating"))["avg"]

    return {
        "visits_total": visits.count(),
        "visits_by_type": visits_by_type,
        "visits_over_time": visits_over_time(location, now=now),
        "average_rating": float(average) if average is not None else 0,
        "rating_distribution": rating_distribution,
        "recent_comments": recent_comments(location),
    }

"""
Tests for locations.visits

Covers:
  1. Visit logging creates a user_added location when nothing is within 50 m
  2. Repeated logging within 50 m reuses the location
  3. Logging just outside 50 m creates a second location
  4. Anonymous visits keep a null user
  5. Rating upsert keeps one row per user and location
  6. A missing comment on update keeps the earlier comment
  7. A lost insert race updates the winning row
"""

from unittest.mock import patch

import pytest

from locations.models import Location, Rating, Visit
from locations.visits import find_location_near, log_visit, rate_location


def test_log_visit_creates_location(db, user):
    location, visit, created = log_visit(15.6942, 120.4132, "Quezon Island", "visited", user_id=user.id)

    assert created is True
    assert location.type == "user_added"
    assert location.name == "Quezon Island"
    assert visit.location_id == location.id
    assert visit.user_id == user.id
    assert visit.type == "visited"


def test_repeated_logging_merges_within_50m(db):
    first, _, created_first = log_visit(15.69420, 120.41320, "Pier", "visited")
    # roughly 22 m north-east of the first pin
    second, _, created_second = log_visit(15.69435, 120.41335, "Pier again", "selected")

    assert created_first is True
    assert created_second is False
    assert second.id == first.id
    assert Location.objects.count() == 1
    assert Visit.objects.filter(location=first).count() == 2


def test_logging_outside_radius_creates_new_location(db):
    log_visit(15.6942, 120.4132, "A", "visited")
    # roughly 111 m north
    _, _, created = log_visit(15.6952, 120.4132, "B", "visited")

    assert created is True
    assert Location.objects.count() == 2


def test_existing_location_is_reused_with_its_type(make_location):
    existing = make_location()

    location, _, created = log_visit(existing.latitude, existing.longitude, "ignored", "viewed")

    assert created is False
    assert location.id == existing.id
    assert location.type == "point_of_interest"
    assert location.name == "Hundred Islands"


def test_anonymous_visit_has_no_user(db):
    _, visit, _ = log_visit(15.6942, 120.4132, "Pier", "viewed")
    assert visit.user_id is None


def test_find_location_near_prefers_closest(make_location):
    make_location(name="edge", latitude=15.69450, longitude=120.41320)
    closer = make_location(name="closer", latitude=15.69425, longitude=120.41320)

    assert find_location_near(15.6942, 120.4132).id == closer.id


def test_find_location_near_none(make_location):
    make_location(latitude=0.0, longitude=0.0)
    assert find_location_near(15.6942, 120.4132) is None


def test_rating_upsert_keeps_single_row(make_location, user):
    location = make_location()

    first, created_first = rate_location(location.id, 4, "Nice", user_id=user.id)
    second, created_second = rate_location(location.id, 2, None, user_id=user.id)

    assert created_first is True
    assert created_second is False
    assert second.id == first.id
    assert Rating.objects.filter(location=location, user=user).count() == 1

    row = Rating.objects.get(pk=first.id)
    assert row.rating == 2
    assert row.comment == "Nice"


def test_rating_update_replaces_comment_when_given(make_location, user):
    location = make_location()
    rate_location(location.id, 4, "Nice", user_id=user.id)
    rate_location(location.id, 5, "Even better at sunset", user_id=user.id)

    row = Rating.objects.get(location=location, user=user)
    assert row.rating == 5
    assert row.comment == "Even better at sunset"


def test_blank_comment_counts_as_absent(make_location, user):
    location = make_location()
    rate_location(location.id, 4, "Nice", user_id=user.id)
    rate_location(location.id, 3, "", user_id=user.id)

    assert Rating.objects.get(location=location, user=user).comment == "Nice"


def test_ratings_from_different_users_are_separate(make_location, user, other_user):
    location = make_location()
    rate_location(location.id, 4, None, user_id=user.id)
    rate_location(location.id, 1, None, user_id=other_user.id)

    assert Rating.objects.filter(location=location).count() == 2


def test_rating_unknown_location(db, user):
    with pytest.raises(Location.DoesNotExist):
        rate_location(9999, 3, user_id=user.id)


def test_lost_insert_race_updates_winner(make_location, user):
    location = make_location()
    winner = Rating.objects.create(location=location, user=user, rating=5, comment="first")

    # pretend the existence check ran before the other request committed
    with patch("locations.visits.Rating.objects.filter") as filter_mock:
        filter_mock.return_value.first.return_value = None
        row, created = rate_location(location.id, 1, None, user_id=user.id)

    assert created is False
    assert row.id == winner.id
    winner.refresh_from_db()
    assert winner.rating == 1
    assert winner.comment == "first"
    assert Rating.objects.count() == 1

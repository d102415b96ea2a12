"""
Shared fixtures for the locations test suite.

Provides:
- users (with and without a display name)
- anonymous and authenticated DRF API clients
- a location factory
"""

from typing import Any

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from locations.models import Location


@pytest.fixture
def user(db):
    return get_user_model().objects.create_user(
        username="maria", password="pw", first_name="Maria", last_name="Santos"
    )


@pytest.fixture
def other_user(db):
    return get_user_model().objects.create_user(username="jun", password="pw")


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def auth_client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def make_location(db):
    def _make(**overrides: Any) -> Location:
        base = {
            "name": "Hundred Islands",
            "latitude": 15.6942,
            "longitude": 120.4132,
        }
        base.update(overrides)
        return Location.objects.create(**base)

    return _make

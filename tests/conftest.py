from __future__ import annotations

import pytest
from django.core.cache import cache
from django.test import Client
from django.utils.text import slugify

from itinerary_planner.models import Place


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client() -> Client:
    return Client()


@pytest.fixture
def make_place(db):
    def _make_place(title: str, latitude: float, longitude: float, **extra) -> Place:
        defaults = {
            "slug": slugify(title),
            "address": f"{title} Road",
            "city": "Nashik",
        }
        defaults.update(extra)
        return Place.objects.create(
            title=title, latitude=latitude, longitude=longitude, **defaults
        )

    return _make_place

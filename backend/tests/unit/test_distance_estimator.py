import asyncio

import httpx
import pytest

from roomie.domain.matching import geodata
from roomie.domain.matching.distance import (
    CityTableTier,
    DistanceEstimator,
    ExactMatchTier,
    GeocodeTier,
    HttpGeocoder,
    format_distance,
    haversine_miles,
    parse_location,
)
from roomie.domain.profiles.models import Coordinates


class StaticGeocoder:
    def __init__(self, points):
        self.points = points
        self.calls = []

    async def geocode(self, query):
        self.calls.append(query)
        return self.points.get(query)


class FailingGeocoder:
    async def geocode(self, query):
        raise RuntimeError("service unavailable")


class SlowGeocoder:
    async def geocode(self, query):
        await asyncio.sleep(5)
        return Coordinates(lat=0.0, lng=0.0)


@pytest.mark.asyncio
async def test_identical_locations_are_zero_even_with_geocoder():
    geocoder = StaticGeocoder({"Boston, MA": Coordinates(1.0, 1.0)})
    estimator = DistanceEstimator(geocoder=geocoder)

    assert await estimator.estimate("Boston, MA", "boston, ma ") == 0.0
    assert estimator.last_tier == "exact"
    assert geocoder.calls == []


@pytest.mark.asyncio
async def test_new_york_to_los_angeles_from_city_table():
    estimator = DistanceEstimator()

    miles = await estimator.estimate("New York, NY", "Los Angeles, CA")

    assert miles == pytest.approx(2451, rel=0.05)
    assert estimator.last_tier == "city_table"


@pytest.mark.asyncio
async def test_geocoder_failure_falls_through_to_table():
    estimator = DistanceEstimator(geocoder=FailingGeocoder())

    miles = await estimator.estimate("New York, NY", "Los Angeles, CA")

    assert miles is not None
    assert estimator.last_tier == "city_table"


@pytest.mark.asyncio
async def test_geocoder_timeout_falls_through_to_table():
    estimator = DistanceEstimator(
        tiers=[ExactMatchTier(), GeocodeTier(SlowGeocoder(), timeout_seconds=0.01), CityTableTier()]
    )

    miles = await estimator.estimate("Boston, MA", "Cambridge, MA")

    assert miles is not None and miles < 10
    assert estimator.last_tier == "city_table"


@pytest.mark.asyncio
async def test_geocoder_result_used_before_table():
    geocoder = StaticGeocoder(
        {
            "Somewhere, MA": Coordinates(42.0, -71.0),
            "Elsewhere, MA": Coordinates(42.0, -72.0),
        }
    )
    estimator = DistanceEstimator(geocoder=geocoder)

    miles = await estimator.estimate("Somewhere, MA", "Elsewhere, MA")

    assert estimator.last_tier == "geocode"
    assert miles == round(haversine_miles(Coordinates(42.0, -71.0), Coordinates(42.0, -72.0)), 2)


@pytest.mark.asyncio
async def test_profile_coordinates_take_priority():
    estimator = DistanceEstimator()

    miles = await estimator.estimate(
        "Smallville, KS",
        "Tinytown, KS",
        coordinates_a=Coordinates(39.0, -95.0),
        coordinates_b=Coordinates(39.0, -95.0),
    )

    assert miles == 0.0
    assert estimator.last_tier == "geocode"


@pytest.mark.asyncio
async def test_same_state_uses_intra_state_table():
    estimator = DistanceEstimator()

    miles = await estimator.estimate("Smallville, MA", "Tinytown, Massachusetts")

    assert miles == geodata.STATE_INTRA_DISTANCE["MA"]
    assert estimator.last_tier == "same_state"


@pytest.mark.asyncio
async def test_different_states_use_region_table():
    estimator = DistanceEstimator()

    assert await estimator.estimate("Smallville, MA", "Tinytown, TX") == 1600.0
    assert estimator.last_tier == "region"
    assert await estimator.estimate("Smallville, MA", "Tinytown, VT") == geodata.SAME_REGION_MILES


@pytest.mark.asyncio
async def test_unparseable_locations_are_unknown():
    estimator = DistanceEstimator()

    assert await estimator.estimate("Atlantis", "Somewhere over the rainbow") is None
    assert await estimator.estimate("", "Boston, MA") is None
    assert estimator.last_tier is None


def test_parse_location_variants():
    assert parse_location("Boston, MA").state == "MA"
    assert parse_location("Austin, Texas").state == "TX"
    parsed = parse_location("Seattle WA")
    assert (parsed.city, parsed.state) == ("seattle", "WA")
    assert parse_location("Chicago, IL, USA").state == "IL"
    assert parse_location("Boston").state == "MA"
    assert parse_location("   ") is None
    assert parse_location("MA") == parse_location("Massachusetts")
    assert (parse_location("NY").city, parse_location("NY").state) == ("", "NY")


@pytest.mark.asyncio
async def test_state_abbreviation_alone_estimates_like_the_state_name():
    estimator = DistanceEstimator()

    by_name = await estimator.estimate("Massachusetts", "Boston, MA")
    by_code = await estimator.estimate("MA", "Boston, MA")
    cross_state = await estimator.estimate("NY", "Boston, MA")

    assert by_code == by_name == geodata.STATE_INTRA_DISTANCE["MA"]
    assert cross_state == geodata.SAME_REGION_MILES


def test_format_distance():
    assert format_distance(None) == "N/A"
    assert format_distance(12.4) == "12 mi"
    assert format_distance(0.0) == "0 mi"


@pytest.mark.asyncio
async def test_http_geocoder_caches_hits_and_misses():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request.url.params["q"])
        if request.url.params["q"] == "Nowhere":
            return httpx.Response(200, json=[])
        return httpx.Response(200, json=[{"lat": "42.36", "lon": "-71.05"}])

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    geocoder = HttpGeocoder(url="https://geo.test/search", http=http, timeout_seconds=1.0, cache_size=8)
    try:
        first = await geocoder.geocode("Boston, MA")
        second = await geocoder.geocode("boston, ma")
        missing = await geocoder.geocode("Nowhere")
        await geocoder.geocode("Nowhere")
    finally:
        await http.aclose()

    assert first == Coordinates(lat=42.36, lng=-71.05)
    assert second == first
    assert missing is None
    assert requests == ["Boston, MA", "Nowhere"]


@pytest.mark.asyncio
async def test_http_geocoder_errors_are_not_cached():
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] == 1:
            return httpx.Response(429)
        return httpx.Response(200, json=[{"lat": "1", "lon": "2"}])

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    geocoder = HttpGeocoder(url="https://geo.test/search", http=http, timeout_seconds=1.0)
    try:
        assert await geocoder.geocode("Denver, CO") is None
        assert await geocoder.geocode("Denver, CO") == Coordinates(lat=1.0, lng=2.0)
    finally:
        await http.aclose()

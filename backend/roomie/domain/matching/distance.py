"""Best-effort mileage between two free-text locations.

The estimator walks an ordered list of tiers; each tier returns miles or
``None`` and the first non-``None`` answer wins. ``None`` from every tier
means "unknown", which ranking treats as lowest priority (never as close).
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

import httpx

from roomie.domain.matching import geodata
from roomie.domain.profiles.models import Coordinates
from roomie.obs import metrics as obs_metrics
from roomie.settings import settings

logger = logging.getLogger(__name__)

EARTH_RADIUS_MILES = 3959.0

_COUNTRY_SUFFIXES = {"usa", "us", "u.s.", "u.s.a.", "united states", "united states of america"}

_CITY_INDEX: Dict[str, List[str]] = {}
for (_city, _state) in geodata.CITY_COORDINATES:
	_CITY_INDEX.setdefault(_city, []).append(_state)


@dataclass(slots=True, frozen=True)
class ParsedLocation:
	city: str
	state: Optional[str]


def _state_from_token(token: str) -> Optional[str]:
	cleaned = token.strip().rstrip(".")
	if not cleaned:
		return None
	if cleaned.upper() in geodata.STATE_ABBREVIATIONS:
		return cleaned.upper()
	lowered = cleaned.lower()
	if lowered in geodata.STATE_NAMES:
		return geodata.STATE_NAMES[lowered]
	# "MA 02139": state followed by a postal code
	head = cleaned.split()[0]
	if head.upper() in geodata.STATE_ABBREVIATIONS and len(cleaned.split()) > 1:
		return head.upper()
	return None


def _state_for_city(city: str) -> Optional[str]:
	states = _CITY_INDEX.get(city)
	if not states:
		return None
	if len(states) == 1:
		return states[0]
	return geodata.PREFERRED_STATE.get(city, states[0])


def parse_location(text: Optional[str]) -> Optional[ParsedLocation]:
	"""Parse "City, ST", "City, State Name" or "City ST"; ``None`` for blank input."""
	if not text:
		return None
	cleaned = " ".join(text.replace(";", ",").split())
	parts = [part.strip() for part in cleaned.split(",") if part.strip()]
	while len(parts) > 1 and parts[-1].lower() in _COUNTRY_SUFFIXES:
		parts.pop()
	if not parts:
		return None
	city = parts[0].lower()
	state: Optional[str] = None
	if len(parts) >= 2:
		state = _state_from_token(parts[1])
	else:
		state_only = parts[0].lower() in geodata.STATE_NAMES or parts[0].upper() in geodata.STATE_ABBREVIATIONS
		whole_state = _state_from_token(parts[0]) if state_only else None
		tokens = parts[0].split()
		if whole_state is not None and city not in _CITY_INDEX:
			return ParsedLocation(city="", state=whole_state)
		if len(tokens) >= 2 and tokens[-1].upper() in geodata.STATE_ABBREVIATIONS:
			city = " ".join(tokens[:-1]).lower()
			state = tokens[-1].upper()
	if state is None:
		state = _state_for_city(city)
	return ParsedLocation(city=city, state=state)


def haversine_miles(a: Coordinates, b: Coordinates) -> float:
	lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
	dlat = lat2 - lat1
	dlng = math.radians(b.lng - a.lng)
	h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
	return 2 * EARTH_RADIUS_MILES * math.asin(min(1.0, math.sqrt(h)))


def format_distance(miles: Optional[float]) -> str:
	if miles is None:
		return "N/A"
	return f"{int(round(miles))} mi"


@dataclass(slots=True, frozen=True)
class LocationQuery:
	text: str
	parsed: Optional[ParsedLocation]
	coordinates: Optional[Coordinates] = None

	@classmethod
	def build(cls, text: Optional[str], coordinates: Optional[Coordinates] = None) -> "LocationQuery":
		raw = (text or "").strip()
		return cls(text=raw, parsed=parse_location(raw), coordinates=coordinates)


class Geocoder(Protocol):
	async def geocode(self, query: str) -> Optional[Coordinates]:
		...


class HttpGeocoder:
	"""Nominatim-style geocoder with a bounded timeout and an LRU result cache.

	Lookups that fail (timeout, transport error, bad payload) return ``None``
	and are not cached so a later attempt can succeed. Empty results are
	cached as misses.
	"""

	def __init__(
		self,
		*,
		url: Optional[str] = None,
		user_agent: Optional[str] = None,
		timeout_seconds: Optional[float] = None,
		cache_size: Optional[int] = None,
		http: Optional[httpx.AsyncClient] = None,
	) -> None:
		self.url = url or settings.geocoding_url
		self.user_agent = user_agent or settings.geocoding_user_agent
		self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.geocoding_timeout_seconds
		self.cache_size = cache_size if cache_size is not None else settings.geocoding_cache_size
		self._http = http
		self._owns_http = http is None
		self._cache: "OrderedDict[str, Optional[Coordinates]]" = OrderedDict()

	def _client(self) -> httpx.AsyncClient:
		if self._http is None:
			self._http = httpx.AsyncClient(headers={"User-Agent": self.user_agent})
		return self._http

	async def aclose(self) -> None:
		if self._http is not None and self._owns_http:
			await self._http.aclose()
			self._http = None

	def _remember(self, key: str, value: Optional[Coordinates]) -> None:
		self._cache[key] = value
		self._cache.move_to_end(key)
		while len(self._cache) > self.cache_size:
			self._cache.popitem(last=False)

	async def geocode(self, query: str) -> Optional[Coordinates]:
		key = query.strip().lower()
		if not key:
			return None
		if key in self._cache:
			self._cache.move_to_end(key)
			return self._cache[key]
		try:
			result = await asyncio.wait_for(self._lookup(query), timeout=self.timeout_seconds)
		except asyncio.TimeoutError:
			obs_metrics.inc_geocode_failure("timeout")
			logger.info("distance.geocode_timeout", extra={"timeout_seconds": self.timeout_seconds})
			return None
		except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
			rate_limited = isinstance(exc, httpx.HTTPStatusError) and exc.response.status_code == 429
			obs_metrics.inc_geocode_failure("rate_limited" if rate_limited else "error")
			logger.info("distance.geocode_failed", extra={"error": type(exc).__name__})
			return None
		self._remember(key, result)
		return result

	async def _lookup(self, query: str) -> Optional[Coordinates]:
		response = await self._client().get(
			self.url,
			params={"q": query, "format": "json", "limit": 1},
			timeout=self.timeout_seconds,
		)
		response.raise_for_status()
		rows = response.json()
		if not rows:
			return None
		first = rows[0]
		return Coordinates(lat=float(first["lat"]), lng=float(first["lon"]))


class DistanceTier(Protocol):
	name: str

	async def estimate(self, a: LocationQuery, b: LocationQuery) -> Optional[float]:
		...


class ExactMatchTier:
	name = "exact"

	async def estimate(self, a: LocationQuery, b: LocationQuery) -> Optional[float]:
		if a.text and a.text.lower() == b.text.lower():
			return 0.0
		return None


class GeocodeTier:
	"""Known profile coordinates first, then the geocoder when one is configured."""

	name = "geocode"

	def __init__(self, geocoder: Optional[Geocoder] = None, *, timeout_seconds: Optional[float] = None) -> None:
		self.geocoder = geocoder
		self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.geocoding_timeout_seconds

	async def _resolve(self, query: LocationQuery) -> Optional[Coordinates]:
		if query.coordinates is not None:
			return query.coordinates
		if self.geocoder is None or not query.text:
			return None
		try:
			return await asyncio.wait_for(self.geocoder.geocode(query.text), timeout=self.timeout_seconds)
		except asyncio.TimeoutError:
			obs_metrics.inc_geocode_failure("timeout")
			logger.info("distance.geocode_timeout", extra={"timeout_seconds": self.timeout_seconds})
			return None
		except Exception:
			obs_metrics.inc_geocode_failure("error")
			logger.warning("distance.geocoder_raised", exc_info=True)
			return None

	async def estimate(self, a: LocationQuery, b: LocationQuery) -> Optional[float]:
		first = await self._resolve(a)
		if first is None:
			return None
		second = await self._resolve(b)
		if second is None:
			return None
		return haversine_miles(first, second)


class CityTableTier:
	name = "city_table"

	@staticmethod
	def _lookup(parsed: Optional[ParsedLocation]) -> Optional[Coordinates]:
		if parsed is None or not parsed.city or parsed.state is None:
			return None
		point = geodata.CITY_COORDINATES.get((parsed.city, parsed.state))
		if point is None:
			return None
		return Coordinates(lat=point[0], lng=point[1])

	async def estimate(self, a: LocationQuery, b: LocationQuery) -> Optional[float]:
		first = self._lookup(a.parsed)
		second = self._lookup(b.parsed)
		if first is None or second is None:
			return None
		return haversine_miles(first, second)


class SameStateTier:
	name = "same_state"

	async def estimate(self, a: LocationQuery, b: LocationQuery) -> Optional[float]:
		if a.parsed is None or b.parsed is None:
			return None
		if a.parsed.state is None or a.parsed.state != b.parsed.state:
			return None
		return geodata.STATE_INTRA_DISTANCE.get(a.parsed.state, geodata.DEFAULT_INTRA_STATE_MILES)


class RegionTier:
	name = "region"

	async def estimate(self, a: LocationQuery, b: LocationQuery) -> Optional[float]:
		if a.parsed is None or b.parsed is None:
			return None
		if a.parsed.state is None or b.parsed.state is None:
			return None
		return geodata.region_distance(a.parsed.state, b.parsed.state)


def default_tiers(geocoder: Optional[Geocoder] = None) -> List[DistanceTier]:
	return [ExactMatchTier(), GeocodeTier(geocoder), CityTableTier(), SameStateTier(), RegionTier()]


class DistanceEstimator:
	def __init__(
		self,
		tiers: Optional[Sequence[DistanceTier]] = None,
		*,
		geocoder: Optional[Geocoder] = None,
	) -> None:
		if tiers is None:
			if geocoder is None and settings.geocoding_enabled:
				geocoder = HttpGeocoder()
			tiers = default_tiers(geocoder)
		self.tiers: Tuple[DistanceTier, ...] = tuple(tiers)
		self.last_tier: Optional[str] = None

	async def estimate(
		self,
		location_a: Optional[str],
		location_b: Optional[str],
		*,
		coordinates_a: Optional[Coordinates] = None,
		coordinates_b: Optional[Coordinates] = None,
	) -> Optional[float]:
		a = LocationQuery.build(location_a, coordinates_a)
		b = LocationQuery.build(location_b, coordinates_b)
		for tier in self.tiers:
			miles = await tier.estimate(a, b)
			if miles is not None:
				self.last_tier = tier.name
				obs_metrics.inc_distance_tier(tier.name)
				return round(miles, 2)
		self.last_tier = None
		obs_metrics.inc_distance_tier("none")
		return None


__all__ = [
	"CityTableTier",
	"DistanceEstimator",
	"DistanceTier",
	"EARTH_RADIUS_MILES",
	"ExactMatchTier",
	"GeocodeTier",
	"Geocoder",
	"HttpGeocoder",
	"LocationQuery",
	"ParsedLocation",
	"RegionTier",
	"SameStateTier",
	"default_tiers",
	"format_distance",
	"haversine_miles",
	"parse_location",
]

"""Central registry for Prometheus metrics used across the service."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram


REQUEST_COUNTER = Counter(
	"roomie_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"roomie_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

MATCHES_COMPUTED = Counter(
	"roomie_matches_computed_total",
	"Ranked match lists produced",
	["kind"],
)

MATCH_CANDIDATES_SKIPPED = Counter(
	"roomie_match_candidates_skipped_total",
	"Candidates dropped before ranking",
	["reason"],
)

MATCH_RANK_DURATION = Histogram(
	"roomie_match_rank_duration_seconds",
	"Duration of a full rank computation",
	buckets=(0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

MATCH_STALE_DISCARDED = Counter(
	"roomie_match_stale_results_discarded_total",
	"Rank results dropped because a newer snapshot arrived",
)

DISTANCE_TIER_HITS = Counter(
	"roomie_distance_tier_hits_total",
	"Distance estimates answered per tier",
	["tier"],
)

GEOCODE_FAILURES = Counter(
	"roomie_geocode_failures_total",
	"Geocoding lookups that failed or timed out",
	["reason"],
)

PROFILES_ADDED = Counter(
	"roomie_profiles_added_total",
	"Profiles discovered by the change detector",
)

PROFILE_DOCUMENTS_REJECTED = Counter(
	"roomie_profile_documents_rejected_total",
	"Stored profile documents that failed normalisation",
)

SUBSCRIPTION_SNAPSHOTS = Counter(
	"roomie_subscription_snapshots_total",
	"Snapshots delivered to subscribers",
	["channel", "trigger"],
)

PRESENCE_HEARTBEATS = Counter(
	"roomie_presence_heartbeats_total",
	"Presence heartbeats written",
)

PRESENCE_TRACKERS_ACTIVE = Gauge(
	"roomie_presence_trackers_active",
	"Presence trackers currently started",
)

CHAT_SEND = Counter(
	"roomie_chat_send_total",
	"Chat messages sent",
	["result"],
)

CHAT_READ_UPDATES = Counter(
	"roomie_chat_read_updates_total",
	"Conversations marked read",
)

UNREAD_TOTAL = Gauge(
	"roomie_unread_total",
	"Unread messages across conversations for tracked viewers",
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def inc_matches_computed(kind: str = "ranked") -> None:
	MATCHES_COMPUTED.labels(kind=kind).inc()


def inc_candidate_skipped(reason: str) -> None:
	MATCH_CANDIDATES_SKIPPED.labels(reason=reason).inc()


def observe_rank_duration(seconds: float) -> None:
	MATCH_RANK_DURATION.observe(seconds)


def inc_stale_rank_discarded() -> None:
	MATCH_STALE_DISCARDED.inc()


def inc_distance_tier(tier: str) -> None:
	DISTANCE_TIER_HITS.labels(tier=tier).inc()


def inc_geocode_failure(reason: str) -> None:
	GEOCODE_FAILURES.labels(reason=reason).inc()


def inc_profiles_added(count: int = 1) -> None:
	PROFILES_ADDED.inc(count)


def inc_profile_rejected() -> None:
	PROFILE_DOCUMENTS_REJECTED.inc()


def inc_subscription_snapshot(channel: str, trigger: str) -> None:
	SUBSCRIPTION_SNAPSHOTS.labels(channel=channel, trigger=trigger).inc()


def inc_presence_heartbeat() -> None:
	PRESENCE_HEARTBEATS.inc()


def presence_tracker_started() -> None:
	PRESENCE_TRACKERS_ACTIVE.inc()


def presence_tracker_stopped() -> None:
	PRESENCE_TRACKERS_ACTIVE.dec()


def inc_chat_send(result: str) -> None:
	CHAT_SEND.labels(result=result).inc()


def inc_chat_read() -> None:
	CHAT_READ_UPDATES.inc()


def set_unread_total(total: int) -> None:
	UNREAD_TOTAL.set(float(total))

"""Prometheus metrics registry and metric objects used across the app."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, REGISTRY


MESSAGES_RECEIVED = Counter(
    "relaygram_messages_received_total",
    "Inbound messages seen by the router",
    ["route"],
)

TRANSLATIONS_REQUESTED = Counter(
    "relaygram_translations_requested_total",
    "Translation requests sent to the responder",
)
TRANSLATIONS_RESOLVED = Counter(
    "relaygram_translations_resolved_total",
    "Translation requests resolved by a responder reply",
)
TRANSLATIONS_TIMED_OUT = Counter(
    "relaygram_translations_timed_out_total",
    "Translation requests that fell back to source text after the deadline",
)
TRANSLATIONS_FAILED = Counter(
    "relaygram_translations_failed_total",
    "Translation requests that could not be delivered to the responder",
)
REPLIES_DISCARDED = Counter(
    "relaygram_replies_discarded_total",
    "Responder replies that arrived with nothing pending",
)
PENDING_TRANSLATIONS = Gauge(
    "relaygram_pending_translations", "Translation requests currently in flight"
)

ALBUMS_FLUSHED = Counter(
    "relaygram_albums_flushed_total", "Album groups flushed after the debounce window"
)
OPEN_ALBUMS = Gauge("relaygram_open_albums", "Album groups waiting for their window")

POSTS_PUBLISHED = Counter(
    "relaygram_posts_published_total", "Posts published to the destination", ["kind"]
)
PUBLISH_FAILURES = Counter(
    "relaygram_publish_failures_total", "Posts dropped after a failed publish", ["kind"]
)

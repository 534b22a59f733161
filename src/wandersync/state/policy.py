"""Deterministic whole-document reconcile policy.

This module intentionally contains no I/O and no clock access: the same
inputs always produce the same decision.
"""

from __future__ import annotations

from wandersync.models._base import parse_iso_timestamp
from wandersync.models.trip import TripDocument


def is_newer(candidate: str | None, baseline: str | None) -> bool | None:
    """Return whether *candidate* is strictly later than *baseline*.

    ISO-8601 values are compared as instants, so ``...Z`` and ``+00:00``
    spellings agree. Returns ``None`` when either timestamp is missing or
    unparseable.
    """
    candidate_dt = parse_iso_timestamp(candidate)
    baseline_dt = parse_iso_timestamp(baseline)
    if candidate_dt is None or baseline_dt is None:
        return None
    return candidate_dt > baseline_dt


def reconcile(local: TripDocument | None, remote: TripDocument | None) -> TripDocument | None:
    """Pick the authoritative copy of the trip document.

    Policy:
    - No local copy: adopt remote (first run on a second device).
    - No remote copy: keep local.
    - Both stamped: the later ``last_synced`` wins; ties keep local.
    - Otherwise keep local and let the next push converge the remote.
    """
    if local is None:
        return remote
    if remote is None:
        return local
    if is_newer(remote.last_synced, local.last_synced):
        return remote
    return local

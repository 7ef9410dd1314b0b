"""
Result memoization for familyplan.

Simulation runs are pure functions of their inputs, so results can be
cached by a SHA-256 of the canonical JSON of (assets, members, goals,
templates, params). Any change to any input changes the key; a hit
returns the stored SimulationResults object unchanged.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections import OrderedDict
from dataclasses import asdict, replace
from typing import Optional, Sequence

from .utils import check_positive

logger = logging.getLogger(__name__)

__all__ = ["scenario_key", "SimulationCache"]


def scenario_key(params, assets: Sequence, members: Sequence, goals: Sequence, templates: Sequence) -> str:
    """SHA-256 hex digest of the canonical JSON of all run inputs."""
    # event_dates may be any Mapping (e.g. a read-only proxy); copy it to plain dicts
    params_payload = asdict(replace(params, event_dates={}))
    params_payload["event_dates"] = {
        member_id: dict(dates) for member_id, dates in params.event_dates.items()
    }
    payload = {
        "params": params_payload,
        "assets": [asdict(a) for a in assets],
        "members": [asdict(m) for m in members],
        "goals": [asdict(g) for g in goals],
        "templates": [asdict(t) for t in templates],
    }
    canonical = json.dumps(payload, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class SimulationCache:
    """
    In-memory LRU cache of SimulationResults keyed by scenario_key.

    Parameters
    ----------
    max_entries : int, default 128
        Least recently used entries are evicted beyond this size.
    """

    def __init__(self, max_entries: int = 128):
        check_positive("max_entries", max_entries)
        self.max_entries = int(max_entries)
        self._store: "OrderedDict[str, object]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[object]:
        if key not in self._store:
            self.misses += 1
            return None
        self._store.move_to_end(key)
        self.hits += 1
        logger.debug("Cache hit %s", key[:12])
        return self._store[key]

    def put(self, key: str, results: object) -> None:
        self._store[key] = results
        self._store.move_to_end(key)
        while len(self._store) > self.max_entries:
            evicted, _ = self._store.popitem(last=False)
            logger.debug("Cache evicted %s", evicted[:12])

    def clear(self) -> None:
        self._store.clear()
        self.hits = self.misses = 0

    def __contains__(self, key: str) -> bool:
        return key in self._store

    def __len__(self) -> int:
        return len(self._store)

    def __repr__(self) -> str:
        return (
            f"SimulationCache(entries={len(self)}/{self.max_entries}, "
            f"hits={self.hits}, misses={self.misses})"
        )

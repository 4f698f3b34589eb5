"""Reduce raw App Engine instance records to running peer candidates."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from .models import PeerCandidate

logger = logging.getLogger(__name__)

RUNNING = "RUNNING"


class InstanceFilter:
    """Keeps instances whose vmStatus is exactly RUNNING and extracts (id, zone).

    Records that are not mappings, or lack a non-empty string id or
    vmZoneName, are dropped rather than raising.
    """

    def filter(self, records: Iterable[Any]) -> list[PeerCandidate]:
        candidates: list[PeerCandidate] = []
        skipped = 0
        for record in records:
            candidate = self._candidate(record)
            if candidate is None:
                skipped += 1
                continue
            candidates.append(candidate)
        if skipped:
            logger.debug("Instance filter dropped %d of %d records", skipped, skipped + len(candidates))
        return candidates

    @staticmethod
    def _candidate(record: Any) -> PeerCandidate | None:
        if not isinstance(record, dict):
            return None
        if record.get("vmStatus") != RUNNING:
            return None
        instance_id = record.get("id")
        zone = record.get("vmZoneName")
        if not isinstance(instance_id, str) or not instance_id:
            return None
        if not isinstance(zone, str) or not zone:
            logger.debug("Running instance %s has no zone, skipping", instance_id)
            return None
        return PeerCandidate(instance_id=instance_id, zone=zone)

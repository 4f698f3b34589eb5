"""Canonical node addresses for App Engine flexible instances."""

from __future__ import annotations

from typing import Iterable

from .models import PeerCandidate


def resolve_address(candidate: PeerCandidate, project_id: str, process_name_prefix: str) -> str:
    """Return the node name reachable over the project's internal zonal DNS.

    e.g. ``app@aef-default-1-abcd.us-central1-f.c.my-project.internal``
    """
    return f"{process_name_prefix}@{candidate.instance_id}.{candidate.zone}.c.{project_id}.internal"


class AddressResolver:
    """Resolves candidates for one project and node name prefix."""

    def __init__(self, project_id: str, process_name_prefix: str):
        self._project_id = project_id
        self._prefix = process_name_prefix

    def resolve(self, candidate: PeerCandidate) -> str:
        return resolve_address(candidate, self._project_id, self._prefix)

    def resolve_all(self, candidates: Iterable[PeerCandidate]) -> list[str]:
        return [self.resolve(c) for c in candidates]

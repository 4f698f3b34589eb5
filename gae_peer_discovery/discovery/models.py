"""Data models for peer candidates and per-cycle discovery results."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class PeerCandidate:
    """A running instance reduced to the fields needed to address it."""

    instance_id: str
    zone: str


@dataclass(frozen=True)
class VersionResult:
    """Outcome of querying one deployment version: addresses on success, a reason on failure."""

    version: str
    addresses: frozenset[str] = frozenset()
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, version: str, addresses) -> VersionResult:
        return cls(version=version, addresses=frozenset(addresses))

    @classmethod
    def failure(cls, version: str, reason: str) -> VersionResult:
        return cls(version=version, error=reason)


@dataclass
class CycleSummary:
    """Everything one discovery cycle produced.

    A cycle is aborted when the version set could not be determined (or the
    scheduler was stopped mid-cycle); in that case no reconciliation happens.
    """

    topology: str
    versions: tuple[str, ...] = ()
    results: list[VersionResult] = field(default_factory=list)
    aborted: str | None = None
    reconciled: bool = False
    elapsed_seconds: float = 0.0

    @property
    def addresses(self) -> frozenset[str]:
        """Deduplicated union of the addresses from every successful version."""
        merged: set[str] = set()
        for result in self.results:
            if result.ok:
                merged.update(result.addresses)
        return frozenset(merged)

    @property
    def failed_versions(self) -> list[str]:
        return [r.version for r in self.results if not r.ok]

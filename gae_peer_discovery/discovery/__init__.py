"""Discovery package: protocols shared by the credential, version and instance lookups."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class CredentialProvider(Protocol):
    """Protocol for anything that can hand out a short-lived bearer token."""

    def fetch(self) -> str:
        """Return a fresh access token. Raises AuthError on failure."""
        ...


@runtime_checkable
class VersionStrategy(Protocol):
    """Protocol for deciding which deployment versions a cycle should query."""

    def resolve(self) -> set[str]:
        """Return the version ids to query this cycle. Raises AuthError/ApiError on failure."""
        ...

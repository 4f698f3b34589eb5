"""Membership reconcilers: the receivers of each cycle's peer address set."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class MembershipReconciler(Protocol):
    """Protocol that every membership reconciler must satisfy.

    ``addresses`` is the full candidate set for the cycle, not a diff; the
    reconciler is free to ignore peers it is already connected to.
    """

    def reconcile(self, topology: str, addresses: frozenset[str]) -> None:
        ...

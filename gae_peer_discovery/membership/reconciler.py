"""Built-in membership reconcilers: log-only and HTTP webhook."""

from __future__ import annotations

import logging

import requests

from ..config import MembershipConfig
from ..exceptions import ReconcileError
from . import MembershipReconciler

logger = logging.getLogger(__name__)


class LogReconciler:
    """Logs the discovered peers without connecting to anything."""

    def reconcile(self, topology: str, addresses: frozenset[str]) -> None:
        logger.info(
            "Discovered peers for %s: %s", topology, ", ".join(sorted(addresses)) or "(none)",
            extra={"topology": topology, "peer_count": len(addresses)},
        )


class WebhookReconciler:
    """POSTs the peer set as JSON to a membership service.

    Body: ``{"topology": "<name>", "peers": ["<address>", ...]}`` with peers sorted.
    """

    def __init__(self, config: MembershipConfig):
        self._url = config.webhook_url
        self._timeout = config.timeout
        self._session = requests.Session()
        self._session.headers["Content-Type"] = "application/json"
        self._session.verify = config.verify_ssl

    def reconcile(self, topology: str, addresses: frozenset[str]) -> None:
        payload = {"topology": topology, "peers": sorted(addresses)}
        logger.debug("POST %s (%d peers)", self._url, len(addresses))

        try:
            resp = self._session.post(self._url, json=payload, timeout=self._timeout)
        except requests.RequestException as exc:
            raise ReconcileError(f"Membership webhook request failed: {exc}") from exc

        if resp.status_code >= 400:
            raise ReconcileError(f"Membership webhook returned HTTP {resp.status_code}: {resp.text}")

    def close(self) -> None:
        self._session.close()


def build_reconciler(config: MembershipConfig) -> MembershipReconciler:
    """Instantiate the reconciler selected by ``membership.mode``."""
    if config.mode == "webhook":
        return WebhookReconciler(config)
    return LogReconciler()

"""Discovery loop: resolve versions -> list instances -> filter -> address -> reconcile -> wait."""

from __future__ import annotations

import logging
import random
import signal
import threading
import time
from types import FrameType

from .config import AppConfig
from .discovery import VersionStrategy
from .discovery.address_resolver import AddressResolver
from .discovery.appengine_client import AppEngineClient
from .discovery.instance_filter import InstanceFilter
from .discovery.models import CycleSummary, VersionResult
from .discovery.versions import build_version_strategy
from .exceptions import ApiError, AuthError
from .membership import MembershipReconciler

logger = logging.getLogger(__name__)


class DiscoveryScheduler:
    """Runs discovery cycles for one topology until stopped.

    Each cycle hands the complete peer set to the reconciler. The next cycle
    is always scheduled, whatever the outcome of the previous one, and the
    wait is measured from the end of the cycle.
    """

    def __init__(
        self,
        config: AppConfig,
        reconciler: MembershipReconciler,
        client: AppEngineClient | None = None,
        stop_event: threading.Event | None = None,
    ):
        self._config = config
        self._topology = config.topology
        self._discovery = config.discovery
        self._client = client or AppEngineClient(config.appengine)
        self._versions: VersionStrategy = build_version_strategy(config.discovery, self._client)
        self._filter = InstanceFilter()
        self._resolver = AddressResolver(config.discovery.project_id, config.discovery.process_name_prefix)
        self._reconciler = reconciler
        self._stop = stop_event or threading.Event()
        self._consecutive_failures = 0

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        """Request shutdown; wakes the loop if it is waiting between cycles."""
        self._stop.set()

    def close(self) -> None:
        """Release the HTTP sessions held by the client and the reconciler."""
        self._client.close()
        close_reconciler = getattr(self._reconciler, "close", None)
        if close_reconciler is not None:
            close_reconciler()

    def run(self) -> None:
        """Run cycle 0 immediately, then one cycle per polling interval until stopped."""
        logger.info(
            "Discovery started for %s, polling every %ss",
            self._topology, self._discovery.polling_interval,
            extra={"topology": self._topology},
        )

        try:
            while not self._stop.is_set():
                try:
                    summary = self.run_once()
                    aborted = summary.aborted is not None
                except Exception:
                    aborted = True
                    logger.exception("Discovery cycle failed", extra={"topology": self._topology})

                if self._stop.is_set():
                    break

                self._consecutive_failures = self._consecutive_failures + 1 if aborted else 0
                delay = self._next_delay()
                logger.debug("Waiting %.1fs before next cycle", delay)
                if self._stop.wait(delay):
                    break
        finally:
            self.close()

        logger.info("Discovery stopped for %s", self._topology, extra={"topology": self._topology})

    def run_once(self) -> CycleSummary:
        """Execute a single discovery + reconciliation cycle."""
        start = time.monotonic()
        summary = CycleSummary(topology=self._topology)

        try:
            versions = sorted(self._versions.resolve())
        except (AuthError, ApiError) as exc:
            summary.aborted = f"could not determine versions: {exc}"
            summary.elapsed_seconds = round(time.monotonic() - start, 2)
            logger.error(
                "Cycle aborted, could not determine versions of %s: %s",
                self._discovery.service_id, exc,
                extra={"topology": self._topology, "elapsed_seconds": summary.elapsed_seconds},
            )
            return summary

        summary.versions = tuple(versions)
        for version in versions:
            if self._stop.is_set():
                break
            summary.results.append(self._query_version(version))

        # A stop during the last query must not reach the reconciler either
        if self._stop.is_set():
            summary.aborted = "stopped"
            logger.info("Stop requested, abandoning cycle", extra={"topology": self._topology})
            return summary

        summary.reconciled = self._reconcile(summary.addresses)
        summary.elapsed_seconds = round(time.monotonic() - start, 2)
        logger.info(
            "Cycle complete",
            extra={
                "topology": self._topology,
                "version_count": len(versions),
                "failed_versions": summary.failed_versions or None,
                "peer_count": len(summary.addresses),
                "elapsed_seconds": summary.elapsed_seconds,
            },
        )
        return summary

    def _query_version(self, version: str) -> VersionResult:
        """List, filter and address the instances of one version, capturing any failure."""
        try:
            records = self._client.list_running_instances(
                self._discovery.project_id, self._discovery.service_id, version,
            )
        except (AuthError, ApiError) as exc:
            logger.warning(
                "Could not list instances of version %s: %s", version, exc,
                extra={"topology": self._topology, "version": version},
            )
            return VersionResult.failure(version, str(exc))

        candidates = self._filter.filter(records)
        addresses = self._resolver.resolve_all(candidates)
        logger.debug(
            "Version %s: %d of %d instances running", version, len(candidates), len(records),
            extra={"topology": self._topology, "version": version},
        )
        return VersionResult.success(version, addresses)

    def _reconcile(self, addresses: frozenset[str]) -> bool:
        try:
            self._reconciler.reconcile(self._topology, addresses)
        except Exception as exc:
            logger.error(
                "Reconciliation failed: %s", exc,
                exc_info=True,
                extra={"topology": self._topology, "peer_count": len(addresses)},
            )
            return False
        return True

    def _next_delay(self) -> float:
        """Polling interval, or the backoff after consecutive aborted cycles, plus jitter."""
        cfg = self._discovery
        delay = cfg.polling_interval

        if self._consecutive_failures > 0 and cfg.backoff_base_seconds > 0:
            delay = min(
                cfg.backoff_base_seconds * (2 ** (self._consecutive_failures - 1)),
                cfg.max_backoff_seconds,
            )
            logger.info(
                "Backing off %.1fs after %d aborted cycles", delay, self._consecutive_failures,
                extra={"topology": self._topology, "consecutive_failures": self._consecutive_failures},
            )

        if cfg.jitter_seconds > 0:
            delay += random.uniform(0, cfg.jitter_seconds)

        return delay

    def install_signal_handlers(self) -> None:
        """Stop on SIGTERM/SIGINT. Only callable from the main thread."""
        signal.signal(signal.SIGTERM, self._handle_shutdown)
        signal.signal(signal.SIGINT, self._handle_shutdown)

    def _handle_shutdown(self, signum: int, frame: FrameType | None) -> None:
        sig_name = signal.Signals(signum).name
        logger.info("Received %s, shutting down", sig_name)
        self.stop()

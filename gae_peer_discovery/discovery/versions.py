"""Version selection strategies, chosen once when the scheduler is built."""

from __future__ import annotations

import logging

from ..config import DiscoveryConfig
from . import VersionStrategy
from .appengine_client import AppEngineClient

logger = logging.getLogger(__name__)


class AllocatedVersions:
    """Every version of the service that currently receives traffic."""

    def __init__(self, client: AppEngineClient, project_id: str, service_id: str):
        self._client = client
        self._project_id = project_id
        self._service_id = service_id

    def resolve(self) -> set[str]:
        return self._client.list_active_versions(self._project_id, self._service_id)


class PinnedVersion:
    """A single configured version, regardless of how traffic is split."""

    def __init__(self, version_id: str):
        self._version_id = version_id

    def resolve(self) -> set[str]:
        return {self._version_id}


def build_version_strategy(config: DiscoveryConfig, client: AppEngineClient) -> VersionStrategy:
    if config.cluster_across_versions:
        logger.debug("Clustering across all traffic-receiving versions of %s", config.service_id)
        return AllocatedVersions(client, config.project_id, config.service_id)
    logger.debug("Clustering only version %s of %s", config.version_id, config.service_id)
    return PinnedVersion(config.version_id)

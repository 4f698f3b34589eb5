"""Shared fixtures and builders."""

from __future__ import annotations

import pytest

from gae_peer_discovery.config import AppConfig, DiscoveryConfig


def make_config(topology: str = "my_app", **discovery) -> AppConfig:
    defaults = {
        "project_id": "proj123",
        "service_id": "default",
        "process_name_prefix": "app",
    }
    defaults.update(discovery)
    return AppConfig(topology=topology, discovery=DiscoveryConfig(**defaults))


@pytest.fixture
def config() -> AppConfig:
    return make_config()

"""REST client for the App Engine Admin API (services, versions and instances)."""

from __future__ import annotations

import logging
from typing import Any

import requests

from ..config import AppEngineConfig
from ..exceptions import ApiError
from . import CredentialProvider
from .credentials import MetadataCredentialProvider

logger = logging.getLogger(__name__)

MAX_INSTANCE_PAGES = 100


class AppEngineClient:
    """Thin wrapper around the App Engine Admin API v1.

    Every request is authorized with a freshly fetched token, so an AuthError
    from the credential provider surfaces from whichever call needed it.
    """

    def __init__(self, config: AppEngineConfig, credentials: CredentialProvider | None = None):
        self._base = config.api_base_url.rstrip("/")
        self._session = requests.Session()
        self._session.headers["Accept"] = "application/json"
        self._session.verify = config.verify_ssl
        self._timeout = config.timeout
        self._page_size = config.page_size
        self._credentials = credentials or MetadataCredentialProvider(
            config.metadata_token_url, timeout=config.metadata_timeout,
        )

    # ── Services ────────────────────────────────────────────────────

    def list_active_versions(self, project_id: str, service_id: str) -> set[str]:
        """Return the ids of the versions currently allocated a share of traffic."""
        body = self._get_json(f"/apps/{project_id}/services/{service_id}")
        split = body.get("split")
        allocations = split.get("allocations") if isinstance(split, dict) else None
        if not isinstance(allocations, dict):
            raise ApiError(f"Service {service_id} response has no split.allocations")
        versions = set(allocations)
        logger.debug("Service %s has %d active versions: %s", service_id, len(versions), sorted(versions))
        return versions

    # ── Instances ───────────────────────────────────────────────────

    def list_running_instances(self, project_id: str, service_id: str, version_id: str) -> list[dict[str, Any]]:
        """Return the raw instance records for a version, following pagination.

        A page without an ``instances`` key contributes nothing; a version
        with no instances yields an empty list.
        """
        path = f"/apps/{project_id}/services/{service_id}/versions/{version_id}/instances"
        instances: list[dict[str, Any]] = []
        page_token: str | None = None
        seen_tokens: set[str] = set()

        for _ in range(MAX_INSTANCE_PAGES):
            params: dict[str, Any] = {"pageSize": self._page_size}
            if page_token:
                params["pageToken"] = page_token
            body = self._get_json(path, params=params)

            page = body.get("instances", [])
            if not isinstance(page, list):
                raise ApiError(f"Version {version_id} instances field is not a list")
            instances.extend(page)

            page_token = body.get("nextPageToken")
            if not page_token:
                break
            if page_token in seen_tokens:
                raise ApiError(f"Version {version_id} repeated page token {page_token!r}")
            seen_tokens.add(page_token)
        else:
            raise ApiError(f"Version {version_id} returned more than {MAX_INSTANCE_PAGES} pages of instances")

        logger.debug("Version %s has %d instances", version_id, len(instances))
        return instances

    def close(self) -> None:
        self._session.close()
        close = getattr(self._credentials, "close", None)
        if close is not None:
            close()

    # ── Internal HTTP helpers ───────────────────────────────────────

    def _get_json(self, path: str, params: dict | None = None) -> dict[str, Any]:
        resp = self._request("GET", path, params=params)
        try:
            body = resp.json()
        except ValueError as exc:
            raise ApiError(f"Invalid JSON from GET {path}", status_code=resp.status_code,
                           response_body=resp.text) from exc
        if not isinstance(body, dict):
            raise ApiError(f"Expected a JSON object from GET {path}", status_code=resp.status_code,
                           response_body=resp.text)
        return body

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self._base}{path}"
        kwargs.setdefault("timeout", self._timeout)
        token = self._credentials.fetch()
        headers = {"Authorization": f"Bearer {token}"}
        logger.debug("%s %s params=%s", method, path, kwargs.get("params"))

        try:
            resp = self._session.request(method, url, headers=headers, **kwargs)
        except requests.RequestException as exc:
            raise ApiError(f"Request failed: {exc}") from exc

        if resp.status_code >= 400:
            raise ApiError(
                f"HTTP {resp.status_code} on {method} {path}: {resp.text}",
                status_code=resp.status_code,
                response_body=resp.text,
            )

        return resp

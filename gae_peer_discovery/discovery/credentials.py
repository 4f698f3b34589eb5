"""Access tokens from the GCE metadata server."""

from __future__ import annotations

import logging

import requests

from ..config import DEFAULT_TOKEN_URL
from ..exceptions import AuthError

logger = logging.getLogger(__name__)

METADATA_HEADERS = {"Metadata-Flavor": "Google"}


class MetadataCredentialProvider:
    """Fetches a token for the default service account on every call.

    Tokens are never cached; retrying is left to the next discovery cycle.
    """

    def __init__(self, token_url: str = DEFAULT_TOKEN_URL, timeout: float = 5.0,
                 session: requests.Session | None = None):
        self._token_url = token_url
        self._timeout = timeout
        self._session = session or requests.Session()

    def fetch(self) -> str:
        try:
            resp = self._session.get(self._token_url, headers=METADATA_HEADERS, timeout=self._timeout)
        except requests.RequestException as exc:
            raise AuthError(f"Metadata token request failed: {exc}") from exc

        if resp.status_code != 200:
            raise AuthError(
                f"Metadata server returned HTTP {resp.status_code} for token request",
                status_code=resp.status_code,
            )

        try:
            body = resp.json()
        except ValueError as exc:
            raise AuthError("Metadata token response is not valid JSON") from exc

        token = body.get("access_token") if isinstance(body, dict) else None
        if not isinstance(token, str) or not token:
            raise AuthError("Metadata token response has no access_token")

        logger.debug("Fetched access token (expires in %ss)", body.get("expires_in"))
        return token

    def close(self) -> None:
        self._session.close()

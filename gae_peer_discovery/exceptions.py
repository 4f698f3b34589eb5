"""Custom exception hierarchy for the peer discovery loop."""


class PeerDiscoveryError(Exception):
    """Base exception for all discovery errors."""


class ConfigError(PeerDiscoveryError):
    """Invalid or missing configuration."""


class AuthError(PeerDiscoveryError):
    """Could not obtain an access token from the metadata server."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ApiError(PeerDiscoveryError):
    """Error communicating with the App Engine Admin API, or an unexpected response shape."""

    def __init__(self, message: str, status_code: int | None = None, response_body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class ReconcileError(PeerDiscoveryError):
    """The membership reconciler rejected or failed to apply a peer set."""

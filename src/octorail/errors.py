"""
OctoRail error types.

Specific exceptions for different failure modes, so the CLI can tell
a policy rejection apart from bad input or a misbehaving marketplace.
"""


class OctorailError(Exception):
    """Base error for all OctoRail operations."""
    pass


class PolicyBlockedError(OctorailError):
    """The provider/API pair is not in the local allowlist."""
    def __init__(self, provider: str, api: str):
        self.provider = provider
        self.api = api
        super().__init__(f"{provider}/{api} is not in your allowlist")

    @property
    def key(self) -> str:
        return f"{self.provider}/{self.api}"


class ValidationError(OctorailError):
    """User input is malformed (call body, price, arguments)."""
    pass


class RemoteError(OctorailError):
    """Marketplace answered with a non-success status."""
    def __init__(self, status_code: int, body: str = "", reason: str = ""):
        self.status_code = status_code
        self.body = body
        self.reason = reason
        label = f"{status_code} {reason}".strip()
        super().__init__(f"{label}: {body}")


class NetworkError(OctorailError):
    """Network-level failures (DNS, connection refused, etc.)."""
    pass


class PersistenceError(OctorailError):
    """Local state could not be written."""
    pass

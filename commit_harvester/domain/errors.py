from __future__ import annotations


class HarvestError(Exception):
    """Base class for failures talking to the remote source."""
    pass


class SourceUnavailable(HarvestError):
    """Raised on transport failures or non-success HTTP statuses."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"{url}: {reason}")


class DecodeError(HarvestError):
    """Raised when a response body does not match the expected schema."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"could not decode {url}: {reason}")

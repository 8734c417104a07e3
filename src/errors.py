"""Error types for the fetch-relay flow.

Every failure a relay request can hit is a FetchRelayError. The endpoint
catches the base class, logs it, and answers with the generic failure
envelope, so callers never see which kind it was.
"""


class FetchRelayError(Exception):
    """Base class for relay failures scoped to a single request."""
    pass


class InvalidInput(FetchRelayError):
    """Missing, malformed, or non-HTTP source URL."""
    pass


class UnsafeTarget(FetchRelayError):
    """Source URL (or a redirect hop) resolves to an internal address."""
    pass


class FetchFailed(FetchRelayError):
    """Network error, timeout, redirect loop, oversize body, or non-200 status."""
    pass


class UnsupportedType(FetchRelayError):
    """Content type maps to an extension outside the upload allow-list."""
    pass


class StorageWriteFailed(FetchRelayError):
    """Local disk write failed. Fatal to the response."""
    pass


class StorageUploadFailed(FetchRelayError):
    """Object storage upload failed. Logged by the backend, never surfaced."""
    pass

"""
Domain-specific errors for the Present application.

This module defines a hierarchy of custom exceptions for the cache, the
presentation controller and the remote control service. None of them is meant
to terminate the host: callers degrade a single slide or disable the remote
control instead.
"""


class PresentError(Exception):
    """Base class for all presenter domain errors.

    This exception should not be raised directly. Instead, subclass it to create
    more specific error types.
    """


class DownloadError(PresentError):
    """Raised when an image download fails at the network or HTTP level."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Download failed for '{url}': {reason}")
        self.url = url
        self.reason = reason


class UnrecognizedPayload(PresentError):
    """Raised when downloaded bytes cannot be identified as a supported image."""

    def __init__(self, url: str, content_type: str | None = None):
        super().__init__(
            f"Downloaded payload is not a recognized image for URL '{url}' "
            f"(content type: {content_type or 'none'})."
        )
        self.url = url
        self.content_type = content_type


class CancelledOperation(PresentError):
    """Raised when a download or a batch warm observes its cancellation token."""


class ListenerBindError(PresentError):
    """Raised when the remote control service cannot bind its port."""

    def __init__(self, host: str, port: int, reason: str):
        super().__init__(f"Cannot listen on {host}:{port}: {reason}")
        self.host = host
        self.port = port
        self.reason = reason

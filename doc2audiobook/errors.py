"""Error taxonomy for the conversion pipeline.

Every error carries the HTTP status the web layer answers with, so routes
never have to translate exceptions one by one.
"""

from typing import Optional


class AudiobookError(Exception):
    """Base class for all errors raised by doc2audiobook."""

    status_code = 500


class UnsupportedFormat(AudiobookError):
    """The document's extension has no extraction strategy."""

    status_code = 415


class ExtractionError(AudiobookError):
    """The document is malformed or contains no readable text."""

    status_code = 400


class AssemblyError(AudiobookError):
    """The segment audio could not be assembled into one stream."""


class UpstreamError(AudiobookError):
    """The TTS provider answered with an error.

    Attributes:
        upstream_status: HTTP status returned by the provider, or None when
            the request never got a response (timeout, connection refused).
        body: Response body as text, kept for diagnostics.
    """

    status_code = 502

    def __init__(self, message: str, upstream_status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.upstream_status = upstream_status
        self.body = body


class SynthesisError(UpstreamError):
    """A text-to-speech request failed."""


class VoiceCloneError(UpstreamError):
    """Creating a cloned voice failed."""


class Unauthorized(AudiobookError):
    status_code = 401


class NotFound(AudiobookError):
    status_code = 404


class NotReady(AudiobookError):
    """The job or voice exists but is not in a usable state yet."""

    status_code = 409


class ConfigurationError(AudiobookError):
    """A required setting (usually a credential) is missing."""


class StorageError(AudiobookError):
    pass


class InvalidInput(AudiobookError):
    status_code = 400


class JobStateError(AudiobookError):
    """An update would break the conversion job state machine."""

    status_code = 409

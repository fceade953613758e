"""Error taxonomy for the trial operations core."""


class TrialSightError(Exception):
    """Base class for errors raised by the operations core."""


class GenerationError(TrialSightError):
    """The generation service failed, timed out, or returned a response
    that does not satisfy the requested schema."""


class ValidationError(TrialSightError, ValueError):
    """Malformed caller input (unknown id, no active trial, blank text)."""


class NotFoundError(ValidationError):
    """An identifier did not resolve to a known trial or entity."""


class SessionBusyError(ValidationError):
    """A chat send was attempted while the assistant was not ready."""

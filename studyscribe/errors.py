"""
Error taxonomy for StudyScribe.

Every error carries a human-readable user_message that the UI layer can
show as-is. Raw exception text and tracebacks never reach the user.

    StudyScribeError
    ├── ContentTooShortError      extracted content below the minimum length
    ├── ServiceUnavailableError   generation capability absent or unsupported
    ├── GenerationFormatError     structured output could not be parsed
    ├── InvalidInputError         bad caller input (e.g. empty report item list)
    └── CancellationSignal        task was cancelled on purpose (not a failure)
"""

from __future__ import annotations


class StudyScribeError(Exception):
    """Base class for all pipeline errors."""

    default_message = "Something went wrong while processing the content."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    @property
    def user_message(self) -> str:
        """Readable reason suitable for display."""
        return str(self)


class ContentTooShortError(StudyScribeError):
    """Extraction yielded fewer characters than the pipeline accepts."""

    default_message = "Content too short (minimum 50 characters)"

    def __init__(self, char_count: int = 0, minimum: int = 50):
        self.char_count = char_count
        self.minimum = minimum
        super().__init__(f"Content too short (minimum {minimum} characters)")


class ServiceUnavailableError(StudyScribeError):
    """The generation capability is missing or unsupported on this device."""

    default_message = "The on-device generation service is not available."

    def __init__(self, capability: str | None = None, reason: str | None = None):
        self.capability = capability
        self.reason = reason
        if capability and reason:
            message = f"{capability} unavailable: {reason}"
        elif capability:
            message = f"{capability} unavailable on this device"
        else:
            message = None
        super().__init__(message)


class GenerationFormatError(StudyScribeError):
    """Structured output could not be parsed, even after the fallback extraction."""

    default_message = "Failed to generate valid flashcards - invalid JSON format"

    def __init__(self, message: str | None = None, raw_response: str | None = None):
        self.raw_response = raw_response
        super().__init__(message)


class InvalidInputError(StudyScribeError):
    """The caller supplied input the pipeline cannot work with."""

    default_message = "Invalid input."


class CancellationSignal(StudyScribeError):
    """Raised inside a pipeline when its task has been cancelled."""

    default_message = "Operation cancelled."


def describe_error(exc: BaseException) -> str:
    """
    Turn any exception into a message fit for display.

    Known pipeline errors return their user_message; anything else gets a
    generic sentence plus the exception's own text, never a traceback.
    """
    if isinstance(exc, StudyScribeError):
        return exc.user_message
    detail = str(exc).strip()
    if detail:
        return f"Unexpected error: {detail}"
    return f"Unexpected error ({type(exc).__name__})"

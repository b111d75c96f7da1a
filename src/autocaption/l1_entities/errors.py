"""Domain error types."""

from __future__ import annotations


class AutocaptionError(Exception):
    """Base for every error this package raises on purpose. ``str(err)`` is user-readable."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# -- input errors: reported immediately, never retried --


class NoElementSelectedError(AutocaptionError):
    """Raised when no audio/video element is selected on the timeline."""


class NoAudioContentError(AutocaptionError):
    """Raised when a selected element has no audible span left after trimming."""


class EmptyAudioInputError(AutocaptionError):
    """Raised when the buffer handed to the recognizer holds no samples."""


class NoAudioExtractableError(AutocaptionError):
    """Raised when not a single element on a track could be decoded."""


class ResultNotFoundError(AutocaptionError):
    """Raised when a transcription result id is not in the results list."""


class DecodeError(AutocaptionError):
    """Raised when a media source cannot be decoded to PCM."""


# -- capability errors: leave the orchestrator in ``error``; safe to retry --


class NoBackendAvailableError(AutocaptionError):
    """Raised when neither the accelerated nor the fallback backend is usable."""

    def __init__(self, message: str, warnings: list[str] | None = None) -> None:
        super().__init__(message)
        self.warnings = list(warnings or [])


class ModelResolutionError(AutocaptionError):
    """Raised when a whisper model cannot be resolved to a local path."""


class ModelLoadFailedError(AutocaptionError):
    """Raised when the recognition model cannot be constructed."""


class MissingModelSpecError(AutocaptionError):
    """Raised when a job arrives without a model identifier."""


class EngineConfigurationInvalidError(AutocaptionError):
    """Raised when the engine lacks the window-length or position-limit metadata."""


class InferenceFailedError(AutocaptionError):
    """Wraps any failure inside the recognizer while a job runs."""


class WorkerUnavailableError(AutocaptionError):
    """Raised when the worker process cannot be started or never becomes reachable."""


class WorkerCommunicationError(AutocaptionError):
    """Raised when the worker connection breaks mid-conversation."""


class TranscriptionTerminatedError(AutocaptionError):
    """Raised to a waiting caller when the worker is terminated. Not an error state."""


_WIRE_KINDS: dict[str, type[AutocaptionError]] = {
    cls.__name__: cls
    for cls in (
        WorkerUnavailableError,
        ModelResolutionError,
        ModelLoadFailedError,
        MissingModelSpecError,
        EngineConfigurationInvalidError,
        EmptyAudioInputError,
        InferenceFailedError,
    )
}


def error_from_wire(kind: str | None, message: str) -> AutocaptionError:
    """Rebuild an error sent across the worker pipe. Unknown kinds become InferenceFailedError."""
    cls = _WIRE_KINDS.get(kind or '', InferenceFailedError)
    return cls(message)

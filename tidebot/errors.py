"""
Project error hierarchy.

Every layer raises its own family so callers can tell where a failure came
from:

    TidebotError
    ├── LLMError          (LLM port: communication, backend, no choice, format)
    ├── StorageError      (storage port: backend, serialization)
    ├── FunctionError     (tools: serialization, external dependency)
    └── EngineError       (wraps any of the above, plus ChatResponseExpected)

The engine never downgrades these. It re-raises them as EngineError with the
original exception kept in ``cause`` so adapters can still inspect it.
"""

from __future__ import annotations


class TidebotError(Exception):
    """Base error. ``cause`` holds the underlying exception, if any."""

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


# --- LLM layer -------------------------------------------------------------

class LLMError(TidebotError):
    """Raised when the LLM backend cannot produce an update."""


class LLMCommunicationError(LLMError):
    """Network or timeout failure talking to the provider."""


class LLMBackendError(LLMError):
    """The provider answered with an error."""


class LLMNoChoiceError(LLMError):
    """The provider returned no choices."""

    def __init__(self, message: str = "no choice returned", cause: BaseException | None = None):
        super().__init__(message, cause=cause)


class LLMResponseFormatError(LLMError):
    """The provider's reply could not be decoded."""


# --- Storage layer ---------------------------------------------------------

class StorageError(TidebotError):
    """Raised by conversation storage backends."""


class StorageBackendError(StorageError):
    pass


class StorageSerializationError(StorageError):
    pass


# --- Function (tool) layer -------------------------------------------------

class FunctionError(TidebotError):
    """Raised by tools when a call cannot be completed."""


class FunctionSerializationError(FunctionError):
    pass


class FunctionExternalError(FunctionError):
    pass


# --- Engine ----------------------------------------------------------------

class EngineError(TidebotError):
    """
    Error surfaced by the assistant engine.

    Wraps LLM, storage and function errors; ``origin`` names the layer the
    wrapped error came from (None for errors raised by the engine itself).
    """

    @property
    def origin(self) -> str | None:
        if isinstance(self.cause, LLMError):
            return "llm"
        if isinstance(self.cause, StorageError):
            return "storage"
        if isinstance(self.cause, FunctionError):
            return "function"
        return None

    @classmethod
    def wrap(cls, error: TidebotError) -> "EngineError":
        """Build an EngineError attributed to the layer that raised ``error``."""
        if isinstance(error, LLMError):
            prefix = "LLM error"
        elif isinstance(error, StorageError):
            prefix = "storage error"
        elif isinstance(error, FunctionError):
            prefix = "function error"
        else:
            prefix = "error"
        return cls(f"{prefix}: {error}", cause=error)


class ChatResponseExpected(EngineError):
    """A turn ended without a final assistant response."""

    def __init__(self, message: str = "expected chat response not found"):
        super().__init__(message)


class ConversationUpdateConsumed(RuntimeError):
    """ConversationUpdate.finish() was called more than once."""

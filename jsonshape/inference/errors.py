from typing import Optional


class InferenceError(Exception):
    """Base class for every error raised by the inference engine."""


class ConfigError(InferenceError, ValueError):
    """An InferenceConfig value is out of range."""


class InvalidStateError(InferenceError, RuntimeError):
    """A mutator was called on an inferrer that has already been finalized."""


class ParseFailure(InferenceError):
    """A record could not be parsed as JSON."""

    SNIPPET_LENGTH = 80

    def __init__(self, message: str, text: Optional[str] = None, index: Optional[int] = None):
        self.message = message
        self.index = index
        if isinstance(text, (bytes, bytearray)):
            snippet = bytes(text).decode("utf-8", "replace")
        else:
            snippet = "" if text is None else str(text)
        if len(snippet) > self.SNIPPET_LENGTH:
            snippet = snippet[:self.SNIPPET_LENGTH - 3] + "..."
        self.snippet = snippet
        where = f"record {index}: " if index is not None else ""
        super().__init__(f"{where}{message}")

    def __repr__(self):
        return f"ParseFailure(index={self.index}, message={self.message!r})"

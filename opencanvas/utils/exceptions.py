"""
Exception hierarchy for OpenCanvas.

Every error raised by the engine inherits from OpenCanvasError so callers
(the HTTP layer in particular) can catch the whole family at once.
"""


class OpenCanvasError(Exception):
    """
    Base exception for all OpenCanvas errors.
    All custom exceptions should inherit from this class.
    """

    def __init__(self, message: str, context: dict | None = None):
        """
        Initialize OpenCanvas error.
        Args:
            message: Error message
            context: Optional context dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class StoreError(OpenCanvasError):
    """
    Persistent store errors.
    Raised when reading or writing settings, sessions or vector records fails.
    """

    pass


class ValidationError(OpenCanvasError):
    """
    Validation errors.
    Raised when input validation fails or data is invalid.
    """

    pass


class NotFoundError(OpenCanvasError):
    """
    Resource not found errors.
    Raised when a requested node, edge or session doesn't exist.
    """

    pass


class ConfigurationError(OpenCanvasError):
    """
    Configuration errors.
    Raised when a provider is missing, disabled, or lacks credentials,
    or when a chat node has no model selected.
    """

    pass


class EmbeddingError(OpenCanvasError):
    """
    Embedding generation errors.
    Raised when an embedding provider call fails.
    """

    pass


class LLMError(OpenCanvasError):
    """
    LLM operation errors.
    Raised when a completion stream fails (API errors, timeouts, etc.).
    """

    pass


class DimensionMismatchError(OpenCanvasError):
    """
    Vector dimension mismatch.
    Raised when two vectors of different lengths are compared.
    """

    pass


class ParseError(OpenCanvasError):
    """
    Document parsing errors.
    Raised when an uploaded file cannot be turned into text chunks.
    """

    pass


class GraphError(ValidationError):
    """
    Canvas graph errors.
    Raised when a command would break the graph's structural rules.
    """

    pass


class CycleError(GraphError):
    """
    Context cycle errors.
    Raised when a new context edge would close a cycle between chat nodes.
    """

    pass


class SendInProgressError(OpenCanvasError):
    """
    Concurrent send errors.
    Raised when a message is sent to a chat node that is still streaming.
    """

    pass

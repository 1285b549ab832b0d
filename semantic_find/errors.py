"""Exceptions raised by the embedding search core."""


class SemanticFindError(Exception):
    """Base class for all errors reported to callers."""


class ProviderInitError(SemanticFindError):
    """The embedding model failed to load. Fatal for the session."""


class EmptyInputError(SemanticFindError):
    """Text was empty or whitespace-only where content is required."""


class DimensionMismatchError(SemanticFindError):
    """Two vectors of different length were compared."""


class EmbeddingError(SemanticFindError):
    """The provider failed while embedding. Previous state is kept."""


class NotReadyError(SemanticFindError):
    """The model is not loaded yet, or there are no embeddings to search."""


class RequestInFlightError(SemanticFindError):
    """A request of the same kind is already outstanding with the provider."""


class GenerationSupersededError(SemanticFindError):
    """The generation was cleared or replaced before its result arrived."""

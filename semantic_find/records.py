"""Records shared between the provider, the coordinator and the HTTP layer."""
from dataclasses import dataclass
from enum import Enum

Vector = tuple[float, ...]


@dataclass(frozen=True)
class Line:
    """One input line. `embedding` is None when the line was not sent to the model."""

    index: int
    raw_text: str
    normalized_text: str
    embedding: Vector | None = None

    @property
    def embedded(self) -> bool:
        return self.embedding is not None


@dataclass(frozen=True)
class SearchResult:
    line_index: int
    score: float


@dataclass(frozen=True)
class EmbeddingProgress:
    current: int
    total: int
    percentage: int


@dataclass(frozen=True)
class BatchCompleted:
    """Terminal event of a batch embedding stream."""

    embeddings: list[list[float]]


@dataclass(frozen=True)
class ProviderStatus:
    is_loading: bool = False
    is_ready: bool = False
    error: str | None = None


class CoordinatorState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"

"""Request/response messages exchanged with the embedding worker thread."""
import itertools
from dataclasses import dataclass, field

INIT = "init"
EMBED = "embed"
EMBED_BATCH = "embed_batch"

_ids = itertools.count(1)


def next_request_id() -> int:
    return next(_ids)


@dataclass(frozen=True)
class InitRequest:
    request_id: int = field(default_factory=next_request_id)
    kind: str = INIT


@dataclass(frozen=True)
class EmbedRequest:
    texts: list[str]
    request_id: int = field(default_factory=next_request_id)
    kind: str = EMBED


@dataclass(frozen=True)
class EmbedBatchRequest:
    texts: list[str]
    batch_size: int
    request_id: int = field(default_factory=next_request_id)
    kind: str = EMBED_BATCH


Request = InitRequest | EmbedRequest | EmbedBatchRequest


@dataclass(frozen=True)
class Ready:
    request_id: int


@dataclass(frozen=True)
class Progress:
    request_id: int
    current: int
    total: int
    percentage: int


@dataclass(frozen=True)
class EmbedResult:
    request_id: int
    embedding: list[float]


@dataclass(frozen=True)
class BatchResult:
    request_id: int
    embeddings: list[list[float]]


@dataclass(frozen=True)
class ErrorMessage:
    request_id: int
    kind: str
    error: str


Response = Ready | Progress | EmbedResult | BatchResult | ErrorMessage


def percentage(current: int, total: int) -> int:
    """round(current / total * 100), halves rounded up."""
    if total <= 0:
        return 100
    return (current * 200 + total) // (2 * total)

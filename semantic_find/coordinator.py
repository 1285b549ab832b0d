"""Coordinator: text -> normalized lines -> batched embeddings -> published collection -> ranked search."""
import asyncio
import logging
from collections.abc import Callable
from contextlib import aclosing

from .config import DEFAULT_TOP_K, EMBED_BATCH_SIZE, SKIP_BLANK_LINES
from .errors import (
    EmbeddingError,
    EmptyInputError,
    GenerationSupersededError,
    NotReadyError,
    ProviderInitError,
)
from .provider import EmbeddingProvider
from .records import (
    BatchCompleted,
    CoordinatorState,
    EmbeddingProgress,
    Line,
    ProviderStatus,
    SearchResult,
)
from .similarity import rank_top_k
from .text_normalizer import normalize_text

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[EmbeddingProgress], None]


class EmbeddingCoordinator:
    """
    Owns the current Line collection and serves searches against it.

    The collection is an immutable tuple that is replaced as a whole when a
    generation completes; searches read whichever collection was published
    last. Every generate or clear bumps a generation counter, and a batch
    result whose generation is no longer current is discarded.
    """

    def __init__(
        self,
        provider: EmbeddingProvider | None = None,
        *,
        batch_size: int = EMBED_BATCH_SIZE,
        skip_blank_lines: bool = SKIP_BLANK_LINES,
    ):
        self._provider = provider or EmbeddingProvider(batch_size=batch_size)
        self._batch_size = batch_size
        self._skip_blank_lines = skip_blank_lines
        self._started = False
        self._lines: tuple[Line, ...] | None = None
        self._progress: EmbeddingProgress | None = None
        self._generation = 0
        self._generate_lock = asyncio.Lock()
        self._search_lock = asyncio.Lock()

    # lifecycle

    async def start(self) -> None:
        await self._provider.start()
        self._started = True

    async def wait_ready(self) -> None:
        await self._provider.wait_ready()

    async def close(self) -> None:
        self.clear()
        await self._provider.close()
        self._started = False

    @property
    def status(self) -> ProviderStatus:
        return self._provider.status

    @property
    def state(self) -> CoordinatorState:
        status = self._provider.status
        if status.error:
            return CoordinatorState.FAILED
        if status.is_ready:
            return CoordinatorState.READY
        if self._started:
            return CoordinatorState.LOADING
        return CoordinatorState.UNINITIALIZED

    @property
    def lines(self) -> tuple[Line, ...] | None:
        return self._lines

    @property
    def progress(self) -> EmbeddingProgress | None:
        return self._progress

    # operations

    def clear(self) -> None:
        """Drop the current collection and invalidate any generation in flight."""
        self._generation += 1
        self._lines = None
        self._progress = None
        logger.info("Cleared embeddings (generation %d)", self._generation)

    async def generate_embeddings(
        self, raw_text: str, on_progress: ProgressCallback | None = None
    ) -> tuple[Line, ...]:
        """
        Split raw_text on newlines, normalize and embed every line, then
        publish the result as the current collection. On failure the
        previous collection stays current.
        """
        self._require_ready()
        if not raw_text or not raw_text.strip():
            raise EmptyInputError("Text cannot be empty")
        self._generation += 1
        generation = self._generation
        async with self._generate_lock:
            if generation != self._generation:
                raise GenerationSupersededError(f"Generation {generation} was superseded before it started")

            raw_lines = raw_text.split("\n")
            normalized = [normalize_text(line) for line in raw_lines]
            positions = [
                i for i, text in enumerate(normalized)
                if text.strip() or not self._skip_blank_lines
            ]
            logger.info(
                "Generating embeddings for %d lines (%d to embed, generation %d)",
                len(raw_lines), len(positions), generation,
            )
            self._progress = None
            try:
                vectors = await self._embed_lines([normalized[i] for i in positions], generation, on_progress)
            except EmbeddingError as e:
                if generation != self._generation:
                    logger.warning("Generation %d failed after it was superseded: %s", generation, e)
                    raise GenerationSupersededError(f"Generation {generation} was superseded") from e
                raise
            finally:
                if generation == self._generation:
                    self._progress = None

            if vectors is None or generation != self._generation:
                logger.warning("Discarding embeddings for superseded generation %d", generation)
                raise GenerationSupersededError(f"Generation {generation} was superseded")

            _check_dimensions(vectors)
            by_position = dict(zip(positions, vectors))
            lines = tuple(
                Line(
                    index=i,
                    raw_text=raw,
                    normalized_text=normalized[i],
                    embedding=tuple(by_position[i]) if i in by_position else None,
                )
                for i, raw in enumerate(raw_lines)
            )
            self._lines = lines
            logger.info("Published %d lines (generation %d)", len(lines), generation)
            return lines

    async def search(self, query: str, k: int = DEFAULT_TOP_K) -> list[SearchResult]:
        """Rank the current lines by similarity to query, best first."""
        self._require_ready()
        if self._lines is None:
            raise NotReadyError("No embeddings generated yet")
        if not query or not query.strip():
            raise EmptyInputError("Search query cannot be empty")
        if k < 1:
            raise ValueError(f"k must be at least 1, got {k}")
        normalized_query = normalize_text(query)
        async with self._search_lock:
            query_embedding = await self._provider.embed_one(normalized_query)
        lines = self._lines
        if lines is None:
            raise NotReadyError("Embeddings were cleared during the search")
        results = rank_top_k(query_embedding, ((line.index, line.embedding) for line in lines), k)
        logger.info("Search %r -> %d results", normalized_query[:60], len(results))
        return results

    # helpers

    def _require_ready(self) -> None:
        state = self.state
        if state is CoordinatorState.FAILED:
            raise ProviderInitError(self._provider.status.error or "Embedding model failed to load")
        if state is not CoordinatorState.READY:
            raise NotReadyError(f"Embedding model is not ready (state: {state.value})")

    async def _embed_lines(
        self, texts: list[str], generation: int, on_progress: ProgressCallback | None
    ) -> list[list[float]] | None:
        """Consume the provider's batch stream. Returns None once the generation goes stale."""
        async with aclosing(self._provider.embed_batch(texts, self._batch_size)) as events:
            async for event in events:
                if generation != self._generation:
                    return None
                if isinstance(event, BatchCompleted):
                    return event.embeddings
                self._progress = event
                if on_progress is not None:
                    on_progress(event)
        raise EmbeddingError("Batch embedding ended without a result")


def _check_dimensions(vectors: list[list[float]]) -> None:
    dims = {len(v) for v in vectors}
    if len(dims) > 1:
        raise EmbeddingError(f"Provider returned embeddings of mixed dimensions: {sorted(dims)}")
    if 0 in dims:
        raise EmbeddingError("Provider returned an empty embedding")

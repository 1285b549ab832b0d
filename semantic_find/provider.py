"""Async client for the embedding worker: readiness, single embeds and streamed batch embeds."""
import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import aclosing, suppress
from dataclasses import dataclass, field
from typing import Any

from . import embeddings
from .config import EMBED_BATCH_SIZE, EMBED_TIMEOUT_SECONDS, WORKER_JOIN_TIMEOUT_SECONDS
from .errors import EmbeddingError, EmptyInputError, NotReadyError, ProviderInitError, RequestInFlightError
from .messages import (
    EMBED,
    EMBED_BATCH,
    INIT,
    BatchResult,
    EmbedBatchRequest,
    EmbedRequest,
    EmbedResult,
    ErrorMessage,
    InitRequest,
    Progress,
    Ready,
    Request,
    Response,
)
from .records import BatchCompleted, EmbeddingProgress, ProviderStatus
from .worker import EmbeddingWorker

logger = logging.getLogger(__name__)

SINGLE = "single"
BATCH = "batch"


@dataclass
class _Pending:
    request_id: int
    inbox: asyncio.Queue = field(default_factory=asyncio.Queue)


class EmbeddingProvider:
    """
    Talks to one EmbeddingWorker by message passing.

    At most one request per kind (single, batch) is outstanding; a second
    one is rejected with RequestInFlightError. Worker replies are routed by
    request id, so replies to abandoned requests are dropped.
    """

    def __init__(
        self,
        model_loader: Callable[[], Any] | None = None,
        *,
        batch_size: int = EMBED_BATCH_SIZE,
        timeout: float | None = EMBED_TIMEOUT_SECONDS,
        join_timeout: float = WORKER_JOIN_TIMEOUT_SECONDS,
    ):
        self._model_loader = model_loader or embeddings.get_model
        self._batch_size = batch_size
        self._timeout = timeout or None
        self._join_timeout = join_timeout
        self._worker: EmbeddingWorker | None = None
        self._dispatcher: asyncio.Task | None = None
        self._ready: asyncio.Future | None = None
        self._pending: dict[str, _Pending] = {}
        self._status = ProviderStatus()
        self._closed = False

    @property
    def status(self) -> ProviderStatus:
        return self._status

    async def start(self) -> None:
        """Start the worker and ask it to load the model. Returns without waiting for it."""
        if self._worker is not None:
            return
        loop = asyncio.get_running_loop()
        inbox: asyncio.Queue = asyncio.Queue()

        def post(message: Response) -> None:
            try:
                loop.call_soon_threadsafe(inbox.put_nowait, message)
            except RuntimeError:
                logger.debug("Event loop closed; dropping %s", type(message).__name__)

        self._ready = loop.create_future()
        self._ready.add_done_callback(_consume_exception)
        self._worker = EmbeddingWorker(self._model_loader, post)
        self._dispatcher = asyncio.create_task(self._dispatch(inbox), name="embedding-dispatcher")
        self._status = ProviderStatus(is_loading=True)
        self._worker.start()
        self._worker.post_message(InitRequest())
        logger.info("Embedding worker started; loading model")

    async def wait_ready(self) -> None:
        """Wait until the model is loaded. Raises ProviderInitError if loading failed."""
        if self._ready is None:
            raise NotReadyError("Embedding provider has not been started")
        await asyncio.shield(self._ready)

    async def close(self) -> None:
        """Stop the worker, fail anything outstanding and wait for the thread to exit."""
        if self._worker is None or self._closed:
            return
        self._closed = True
        self._worker.terminate()
        if self._dispatcher is not None:
            self._dispatcher.cancel()
            with suppress(asyncio.CancelledError):
                await self._dispatcher
        self._reject_pending("Embedding provider closed")
        if self._ready is not None and not self._ready.done():
            self._ready.set_exception(ProviderInitError("Embedding provider closed before it was ready"))
        self._status = ProviderStatus()
        # a model call in progress finishes before the worker reads the stop request
        await asyncio.to_thread(self._worker.join, self._join_timeout)
        if self._worker.is_alive():
            logger.warning("Embedding worker still running %ss after close", self._join_timeout)

    async def embed_one(self, text: str) -> list[float]:
        """Embed a single non-empty text."""
        self._require_ready()
        if not text or not text.strip():
            raise EmptyInputError("Text cannot be empty")
        pending = self._register(SINGLE, EmbedRequest(texts=[text]))
        try:
            message = await self._receive(pending)
        finally:
            self._release(SINGLE, pending)
        if isinstance(message, ErrorMessage):
            raise EmbeddingError(message.error)
        return message.embedding

    async def embed_batch(
        self, texts: Sequence[str], batch_size: int | None = None
    ) -> AsyncIterator[EmbeddingProgress | BatchCompleted]:
        """
        Stream a batch embedding: EmbeddingProgress after every chunk, then one
        BatchCompleted. Failure is raised as EmbeddingError. Nothing is sent to
        the worker until the first item is requested; closing the stream early
        abandons the request.
        """
        self._require_ready()
        size = self._batch_size if batch_size is None else batch_size
        if size < 1:
            raise ValueError(f"batch_size must be at least 1, got {size}")
        texts = list(texts)
        if not texts:
            yield BatchCompleted(embeddings=[])
            return
        pending = self._register(BATCH, EmbedBatchRequest(texts=texts, batch_size=size))
        try:
            while True:
                message = await self._receive(pending)
                if isinstance(message, ErrorMessage):
                    raise EmbeddingError(message.error)
                if isinstance(message, Progress):
                    yield EmbeddingProgress(
                        current=message.current,
                        total=message.total,
                        percentage=message.percentage,
                    )
                    continue
                if len(message.embeddings) != len(texts):
                    raise EmbeddingError(
                        f"Provider returned {len(message.embeddings)} embeddings for {len(texts)} texts"
                    )
                yield BatchCompleted(embeddings=message.embeddings)
                return
        finally:
            self._release(BATCH, pending)

    async def embed_many(
        self,
        texts: Sequence[str],
        batch_size: int | None = None,
        on_progress: Callable[[EmbeddingProgress], None] | None = None,
    ) -> list[list[float]]:
        """Embed texts in order, calling on_progress after every chunk."""
        async with aclosing(self.embed_batch(texts, batch_size)) as events:
            async for event in events:
                if isinstance(event, BatchCompleted):
                    return event.embeddings
                if on_progress is not None:
                    on_progress(event)
        raise EmbeddingError("Batch embedding ended without a result")

    def _require_ready(self) -> None:
        if self._status.error:
            raise ProviderInitError(self._status.error)
        if self._closed or not self._status.is_ready:
            raise NotReadyError("Embedding model is not ready")

    def _register(self, kind: str, request: Request) -> _Pending:
        if kind in self._pending:
            raise RequestInFlightError(f"A {kind} embedding request is already outstanding")
        if self._worker is None:
            raise NotReadyError("Embedding provider has not been started")
        pending = _Pending(request_id=request.request_id)
        self._pending[kind] = pending
        self._worker.post_message(request)
        return pending

    def _release(self, kind: str, pending: _Pending) -> None:
        if self._pending.get(kind) is pending:
            del self._pending[kind]

    async def _receive(self, pending: _Pending) -> Response:
        try:
            return await asyncio.wait_for(pending.inbox.get(), self._timeout)
        except asyncio.TimeoutError:
            logger.warning("No reply from embedding worker for request %s within %ss", pending.request_id, self._timeout)
            raise EmbeddingError(f"Embedding worker did not reply within {self._timeout}s") from None

    async def _dispatch(self, inbox: asyncio.Queue) -> None:
        while True:
            message = await inbox.get()
            self._route(message)

    def _route(self, message: Response) -> None:
        if isinstance(message, Ready):
            self._status = ProviderStatus(is_ready=True)
            if self._ready is not None and not self._ready.done():
                self._ready.set_result(None)
            logger.info("Embedding model ready")
        elif isinstance(message, ErrorMessage) and message.kind == INIT:
            self._fail_init(message.error)
        elif isinstance(message, (Progress, BatchResult)) or (
            isinstance(message, ErrorMessage) and message.kind == EMBED_BATCH
        ):
            self._deliver(BATCH, message)
        elif isinstance(message, EmbedResult) or (isinstance(message, ErrorMessage) and message.kind == EMBED):
            self._deliver(SINGLE, message)
        else:
            logger.warning("Unexpected worker message: %r", message)

    def _deliver(self, kind: str, message: Response) -> None:
        pending = self._pending.get(kind)
        if pending is None or pending.request_id != message.request_id:
            logger.debug(
                "Dropping %s for request %s: not the outstanding %s request",
                type(message).__name__, message.request_id, kind,
            )
            return
        pending.inbox.put_nowait(message)

    def _fail_init(self, error: str) -> None:
        logger.error("Embedding model failed to load: %s", error)
        self._status = ProviderStatus(error=error)
        if self._ready is not None and not self._ready.done():
            self._ready.set_exception(ProviderInitError(error))
        self._reject_pending(error)

    def _reject_pending(self, error: str) -> None:
        for kind, pending in list(self._pending.items()):
            pending.inbox.put_nowait(ErrorMessage(request_id=pending.request_id, kind=kind, error=error))
        self._pending.clear()


def _consume_exception(future: asyncio.Future) -> None:
    # keep asyncio from logging "exception was never retrieved" when nobody waits for readiness
    if not future.cancelled():
        future.exception()

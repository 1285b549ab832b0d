"""Background thread that owns the model and answers embedding requests one at a time."""
import logging
import queue
import threading
from collections.abc import Callable
from typing import Any

from . import embeddings
from .messages import (
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
    percentage,
)

logger = logging.getLogger(__name__)

_STOP = object()


class EmbeddingWorker(threading.Thread):
    """
    Consumes requests from a queue and posts responses through `post`.

    `post` is called from this thread; the caller makes it safe to hand
    messages to its own event loop. A failing request produces an
    ErrorMessage tagged with its request id and the thread keeps running.
    """

    def __init__(self, model_loader: Callable[[], Any], post: Callable[[Response], None]):
        super().__init__(name="embedding-worker", daemon=True)
        self._model_loader = model_loader
        self._post = post
        self._requests: queue.Queue = queue.Queue()
        self._model: Any = None

    def post_message(self, request: Request) -> None:
        self._requests.put(request)

    def terminate(self) -> None:
        self._requests.put(_STOP)

    def run(self) -> None:
        while True:
            request = self._requests.get()
            if request is _STOP:
                logger.info("Embedding worker stopped")
                return
            try:
                self._handle(request)
            except Exception as e:
                logger.exception("Embedding worker request %s (%s) failed: %s", request.request_id, request.kind, e)
                self._post(ErrorMessage(request_id=request.request_id, kind=request.kind, error=str(e) or type(e).__name__))

    def _handle(self, request: Request) -> None:
        if isinstance(request, InitRequest):
            self._init()
            self._post(Ready(request_id=request.request_id))
        elif isinstance(request, EmbedRequest):
            self._post(EmbedResult(request_id=request.request_id, embedding=self._embed_single(request.texts)))
        elif isinstance(request, EmbedBatchRequest):
            self._post(BatchResult(request_id=request.request_id, embeddings=self._embed_batch(request)))
        else:
            raise ValueError(f"Unknown request type: {type(request).__name__}")

    def _init(self) -> None:
        if self._model is None:
            self._model = self._model_loader()

    def _require_model(self) -> Any:
        if self._model is None:
            raise RuntimeError("Model not initialized")
        return self._model

    def _embed_single(self, texts: list[str]) -> list[float]:
        if len(texts) != 1:
            raise ValueError("Single text required for embed")
        return embeddings.encode(self._require_model(), texts)[0]

    def _embed_batch(self, request: EmbedBatchRequest) -> list[list[float]]:
        model = self._require_model()
        texts = request.texts
        total = len(texts)
        batch_size = max(1, request.batch_size)
        results: list[list[float]] = []
        for start in range(0, total, batch_size):
            results.extend(embeddings.encode(model, texts[start:start + batch_size]))
            current = min(start + batch_size, total)
            self._post(
                Progress(
                    request_id=request.request_id,
                    current=current,
                    total=total,
                    percentage=percentage(current, total),
                )
            )
        return results

"""Tests for the embedding worker thread and its message helpers."""
import pytest

from semantic_find.messages import (
    EMBED,
    EMBED_BATCH,
    BatchResult,
    EmbedBatchRequest,
    EmbedRequest,
    EmbedResult,
    ErrorMessage,
    InitRequest,
    Progress,
    Ready,
    percentage,
)
from semantic_find.worker import EmbeddingWorker


def _run(worker: EmbeddingWorker, *requests) -> None:
    worker.start()
    for request in requests:
        worker.post_message(request)
    worker.terminate()
    worker.join(timeout=5)
    assert not worker.is_alive()


@pytest.mark.parametrize(
    "current,total,expected",
    [(1, 8, 13), (1, 3, 33), (2, 3, 67), (50, 120, 42), (100, 120, 83), (120, 120, 100), (0, 10, 0)],
)
def test_percentage_rounds_half_up(current: int, total: int, expected: int) -> None:
    assert percentage(current, total) == expected


def test_request_ids_are_unique() -> None:
    ids = {InitRequest().request_id, EmbedRequest(texts=["a"]).request_id, EmbedBatchRequest(texts=[], batch_size=1).request_id}
    assert len(ids) == 3


def test_batch_posts_progress_then_result(fake_model) -> None:
    posted = []
    batch = EmbedBatchRequest(texts=["a", "b", "c", "d", "e"], batch_size=2)
    _run(EmbeddingWorker(lambda: fake_model, posted.append), InitRequest(), batch)

    assert isinstance(posted[0], Ready)
    progress = [m for m in posted if isinstance(m, Progress)]
    assert [(p.current, p.total, p.percentage) for p in progress] == [(2, 5, 40), (4, 5, 80), (5, 5, 100)]
    assert all(p.request_id == batch.request_id for p in progress)
    result = posted[-1]
    assert isinstance(result, BatchResult)
    assert result.request_id == batch.request_id
    assert len(result.embeddings) == 5
    assert fake_model.calls == [["a", "b"], ["c", "d"], ["e"]]


def test_single_embed(fake_model) -> None:
    posted = []
    request = EmbedRequest(texts=["hello world"])
    _run(EmbeddingWorker(lambda: fake_model, posted.append), InitRequest(), request)
    result = posted[-1]
    assert isinstance(result, EmbedResult)
    assert result.request_id == request.request_id
    assert len(result.embedding) == fake_model.dim


def test_single_embed_requires_exactly_one_text(fake_model) -> None:
    posted = []
    request = EmbedRequest(texts=["a", "b"])
    _run(EmbeddingWorker(lambda: fake_model, posted.append), InitRequest(), request)
    error = posted[-1]
    assert isinstance(error, ErrorMessage)
    assert error.kind == EMBED
    assert error.request_id == request.request_id
    assert "Single text required" in error.error


def test_embed_before_init_fails(fake_model) -> None:
    posted = []
    _run(EmbeddingWorker(lambda: fake_model, posted.append), EmbedBatchRequest(texts=["a"], batch_size=1))
    assert isinstance(posted[0], ErrorMessage)
    assert posted[0].kind == EMBED_BATCH
    assert posted[0].error == "Model not initialized"


def test_failing_request_does_not_stop_worker(failing_model) -> None:
    posted = []
    bad = EmbedBatchRequest(texts=["fine", "boom"], batch_size=1)
    good = EmbedRequest(texts=["still works"])
    _run(EmbeddingWorker(lambda: failing_model, posted.append), InitRequest(), bad, good)
    kinds = [type(m) for m in posted]
    assert kinds == [Ready, Progress, ErrorMessage, EmbedResult]
    assert posted[2].request_id == bad.request_id
    assert posted[3].request_id == good.request_id


def test_init_failure_is_reported() -> None:
    posted = []

    def loader():
        raise OSError("no such model")

    _run(EmbeddingWorker(loader, posted.append), InitRequest())
    assert len(posted) == 1
    assert isinstance(posted[0], ErrorMessage)
    assert posted[0].error == "no such model"

"""Pytest fixtures and configuration."""
import asyncio
import threading
from contextlib import asynccontextmanager

import numpy as np
import pytest

from semantic_find.coordinator import EmbeddingCoordinator
from semantic_find.provider import EmbeddingProvider


class BagOfWordsModel:
    """
    Stand-in for SentenceTransformer: lowercase word counts over a vocabulary
    that grows as words are seen. Deterministic, no download.

    `gate` blocks every encode call until set; `entered` is set once encode
    has been called. Any text containing `fail_on` raises.
    """

    def __init__(self, dim: int = 64, *, fail_on: str | None = None, gated: bool = False):
        self.dim = dim
        self.fail_on = fail_on
        self.gate = threading.Event()
        if not gated:
            self.gate.set()
        self.entered = threading.Event()
        self.vocab: dict[str, int] = {}
        self.calls: list[list[str]] = []

    def encode(self, texts, convert_to_numpy=True, normalize_embeddings=True):
        self.calls.append(list(texts))
        self.entered.set()
        self.gate.wait(timeout=5)
        rows = []
        for text in texts:
            if self.fail_on and self.fail_on in text:
                raise RuntimeError(f"cannot embed {text!r}")
            vec = np.zeros(self.dim)
            for word in text.lower().split():
                vec[self.vocab.setdefault(word, len(self.vocab) % self.dim)] += 1.0
            rows.append(vec)
        return np.array(rows)

    async def wait_entered(self, timeout: float = 5.0) -> None:
        await asyncio.to_thread(self.entered.wait, timeout)
        assert self.entered.is_set(), "timed out waiting for the fake model"


@pytest.fixture
def fake_model() -> BagOfWordsModel:
    return BagOfWordsModel()


@pytest.fixture
def gated_model() -> BagOfWordsModel:
    return BagOfWordsModel(gated=True)


@pytest.fixture
def failing_model() -> BagOfWordsModel:
    return BagOfWordsModel(fail_on="boom")


@pytest.fixture
def make_coordinator(fake_model):
    """Factory for coordinators backed by a fake model; call inside the running event loop."""

    def _make(model=None, *, batch_size=50, timeout=5.0, skip_blank_lines=True, loader=None):
        chosen = model if model is not None else fake_model
        provider = EmbeddingProvider(loader or (lambda: chosen), batch_size=batch_size, timeout=timeout)
        return EmbeddingCoordinator(provider, batch_size=batch_size, skip_blank_lines=skip_blank_lines)

    return _make


@pytest.fixture
def ready_coordinator(make_coordinator):
    """Async context manager yielding a started, ready coordinator that is closed afterwards."""

    @asynccontextmanager
    async def _ready(model=None, **kwargs):
        coordinator = make_coordinator(model, **kwargs)
        await coordinator.start()
        try:
            await coordinator.wait_ready()
            yield coordinator
        finally:
            await coordinator.close()

    return _ready

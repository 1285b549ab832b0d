"""FastAPI app: embed pasted text line by line and search the lines by meaning."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .config import DEFAULT_TOP_K, LOG_LEVEL
from .coordinator import EmbeddingCoordinator
from .errors import (
    DimensionMismatchError,
    EmbeddingError,
    EmptyInputError,
    GenerationSupersededError,
    NotReadyError,
    ProviderInitError,
    RequestInFlightError,
    SemanticFindError,
)
from .formatter import lines_payload, progress_payload, results_payload
from .text_normalizer import normalize_text

logging.basicConfig(level=LOG_LEVEL, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)

_STATUS_CODES: dict[type[SemanticFindError], int] = {
    EmptyInputError: 400,
    NotReadyError: 409,
    RequestInFlightError: 409,
    GenerationSupersededError: 409,
    EmbeddingError: 502,
    ProviderInitError: 503,
    DimensionMismatchError: 500,
}


class TextBody(BaseModel):
    text: str


class SearchBody(BaseModel):
    query: str
    k: int = Field(default=DEFAULT_TOP_K, ge=1)


def create_coordinator() -> EmbeddingCoordinator:
    return EmbeddingCoordinator()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start loading the model in the background; the app serves /status while it loads."""
    coordinator = create_coordinator()
    app.state.coordinator = coordinator
    await coordinator.start()
    yield
    await coordinator.close()
    logger.info("Semantic Find shut down")


app = FastAPI(title="Semantic Find", version="0.1.0", lifespan=lifespan)


def _coordinator(request: Request) -> EmbeddingCoordinator:
    return request.app.state.coordinator


@app.exception_handler(SemanticFindError)
async def semantic_find_error_handler(request: Request, exc: SemanticFindError) -> JSONResponse:
    status_code = next(
        (code for cls, code in _STATUS_CODES.items() if isinstance(exc, cls)),
        500,
    )
    if status_code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    else:
        logger.info("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/status")
async def status(request: Request) -> dict:
    """Readiness of the model plus the size of the current collection."""
    coordinator = _coordinator(request)
    provider_status = coordinator.status
    lines = coordinator.lines
    return {
        "state": coordinator.state.value,
        "is_loading": provider_status.is_loading,
        "is_ready": provider_status.is_ready,
        "error": provider_status.error,
        "line_count": len(lines) if lines is not None else 0,
        "progress": progress_payload(coordinator.progress),
    }


@app.post("/normalize")
async def normalize(body: TextBody) -> dict[str, str]:
    return {"text": body.text, "normalized": normalize_text(body.text)}


@app.post("/embeddings")
async def generate_embeddings(body: TextBody, request: Request) -> dict:
    """Embed every line of the text and make it the searchable collection."""
    lines = await _coordinator(request).generate_embeddings(body.text)
    return lines_payload(lines)


@app.get("/embeddings/progress")
async def embeddings_progress(request: Request) -> dict | None:
    return progress_payload(_coordinator(request).progress)


@app.delete("/embeddings")
async def clear_embeddings(request: Request) -> dict[str, str]:
    _coordinator(request).clear()
    return {"status": "cleared"}


@app.get("/lines")
async def get_lines(request: Request) -> dict:
    lines = _coordinator(request).lines
    if lines is None:
        raise NotReadyError("No embeddings generated yet")
    return lines_payload(lines)


@app.post("/search")
async def search(body: SearchBody, request: Request) -> dict:
    coordinator = _coordinator(request)
    results = await coordinator.search(body.query, k=body.k)
    lines = coordinator.lines or ()
    return {
        "query": body.query,
        "normalized_query": normalize_text(body.query),
        "results": results_payload(lines, results),
    }

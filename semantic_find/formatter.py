"""Format search results and lines for display (CLI output and HTTP payloads)."""
from collections.abc import Sequence

from .records import EmbeddingProgress, Line, SearchResult


def _truncate(text: str, max_chars: int) -> str:
    text = text.strip()
    if len(text) <= max_chars:
        return text
    return text[: max_chars - 3].rstrip() + "..."


def format_result_line(line: Line, result: SearchResult, *, max_chars: int = 120) -> str:
    """One result as `line:score  text`; line numbers are 1-based like an editor gutter."""
    return f"{line.index + 1:>5}:{result.score:.4f}  {_truncate(line.raw_text, max_chars)}"


def format_results(
    lines: Sequence[Line],
    results: Sequence[SearchResult],
    *,
    query: str | None = None,
    max_chars: int = 120,
) -> str:
    """Plain-text block listing each result, best first."""
    out = []
    if query is not None:
        out.append(f"Top {len(results)} matches for {query!r}:")
    if not results:
        out.append("No matching lines.")
    for result in results:
        out.append(format_result_line(lines[result.line_index], result, max_chars=max_chars))
    return "\n".join(out)


def format_progress(progress: EmbeddingProgress) -> str:
    return f"Embedded {progress.current}/{progress.total} lines ({progress.percentage}%)"


def line_payload(line: Line) -> dict:
    return {
        "index": line.index,
        "raw_text": line.raw_text,
        "normalized_text": line.normalized_text,
        "embedded": line.embedded,
    }


def lines_payload(lines: Sequence[Line]) -> dict:
    embedded = [line for line in lines if line.embedding is not None]
    return {
        "line_count": len(lines),
        "embedded_count": len(embedded),
        "dimension": len(embedded[0].embedding) if embedded else None,
        "lines": [line_payload(line) for line in lines],
    }


def results_payload(lines: Sequence[Line], results: Sequence[SearchResult]) -> list[dict]:
    return [
        {
            "line_index": r.line_index,
            "score": r.score,
            "text": lines[r.line_index].raw_text,
        }
        for r in results
    ]


def progress_payload(progress: EmbeddingProgress | None) -> dict | None:
    if progress is None:
        return None
    return {"current": progress.current, "total": progress.total, "percentage": progress.percentage}

"""Rewrite identifier-like text (snake_case, kebab-case, camelCase, paths) into words before embedding."""
import re

_CAMEL_BOUNDARY = re.compile(r"([a-z])([A-Z])")
_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """
    Return text with identifier separators turned into single spaces.

    Lines and queries must both go through this function, otherwise their
    embeddings are not comparable.

        >>> normalize_text("automatically-stop-rds-databases")
        'automatically stop rds databases'
        >>> normalize_text("getUserProfile")
        'get User Profile'
    """
    if not text or not text.strip():
        return text
    out = text.replace("_", " ")
    out = out.replace("-", " ")
    out = _CAMEL_BOUNDARY.sub(r"\1 \2", out)
    out = out.replace("/", " ")
    out = _WHITESPACE.sub(" ", out)
    return out.strip()

"""Build web-search URLs from the active editor selection."""

from __future__ import annotations

from urllib.parse import quote

from .settings import SELECTION_PLACEHOLDER


def build_search_query(selection_text: str | None, language_id: str | None) -> str | None:
    """Return the suggested query for ``selection_text``, or ``None`` when nothing is selected."""

    if not selection_text or not selection_text.strip():
        return None
    flattened = selection_text.replace("\r\n", " ").replace("\n", " ").strip()
    if language_id:
        return f"{flattened} {language_id}"
    return flattened


def build_search_url(query_prefix: str, query: str) -> str:
    """Substitute the URL-quoted ``query`` into the configured ``query_prefix`` template."""

    if SELECTION_PLACEHOLDER not in query_prefix:
        raise ValueError(f"Search query prefix must contain {SELECTION_PLACEHOLDER}")
    return query_prefix.replace(SELECTION_PLACEHOLDER, quote(query, safe=""))


__all__ = ["build_search_query", "build_search_url"]

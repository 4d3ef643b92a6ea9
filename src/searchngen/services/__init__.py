"""Service layer helpers (settings, web search)."""

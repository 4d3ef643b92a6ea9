"""Prompt text used by the chat session."""

from __future__ import annotations

from ..editor.surface import CodeContext

SYSTEM_PROMPT = (
    "You are a highly intelligent AI assistant with a deep understanding of programming languages "
    "and their API documentation. I might provide you with a code block and your role is to provide "
    "a comprehensive answer to any question or request that I ask about the code block. Keep your "
    "answers as short as possible without sacrificing accuracy, and answer in markdown format."
)


EXPLAIN_PROMPT = "Explain the code"


def compose_prompt(question: str, code_context: CodeContext | None = None) -> str:
    """Return the human turn sent for ``question``, annotated with any selected code."""

    prompt = question.strip()
    if code_context is None or not code_context.code:
        return prompt
    return f"{prompt} (The question refers to the code in {code_context.language_id}:\n{code_context.code})"


__all__ = ["EXPLAIN_PROMPT", "SYSTEM_PROMPT", "compose_prompt"]

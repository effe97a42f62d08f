"""Prompt templates for grounded chat.

The system message is the only place retrieved context enters the
conversation; it is always the first message sent to the model.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from langchain_core.messages import SystemMessage, convert_to_messages

if TYPE_CHECKING:
    from langchain_core.messages import BaseMessage

    from pdfchat.retrieval.models import ContextBlock

SYSTEM_PREAMBLE = """\
You are a helpful assistant. Use the following context from uploaded \
documents to answer the user's question accurately. If the context doesn't \
provide enough information, rely on your general knowledge but indicate that \
the answer is based on general knowledge.\
"""

GENERAL_KNOWLEDGE_GUIDANCE = """\
The user has not attached any documents to this conversation. Answer from \
your general knowledge and say so.\
"""


def build_system_prompt(context: ContextBlock) -> str:
    """Combine the preamble with the rendered *context*.

    An empty context (no documents supplied) renders the fixed "no
    documents provided" marker plus general-knowledge guidance.
    """
    parts = [SYSTEM_PREAMBLE]
    if context.is_empty:
        parts.append(GENERAL_KNOWLEDGE_GUIDANCE)
    parts.append(f"Context:\n{context.render()}")
    return "\n\n".join(parts)


def build_chat_messages(
    history: Sequence[Mapping[str, Any]],
    context: ContextBlock,
) -> list[BaseMessage]:
    """Prepend the grounded system message to the caller's *history*.

    *history* items are ``{"role": ..., "content": ...}`` mappings in
    conversation order.
    """
    turns = [{"role": m["role"], "content": m["content"]} for m in history]
    return [SystemMessage(content=build_system_prompt(context)), *convert_to_messages(turns)]

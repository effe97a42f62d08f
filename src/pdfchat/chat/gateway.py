"""Grounded, streamed chat completions."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping, Sequence
from contextlib import aclosing
from typing import TYPE_CHECKING, Any

from pdfchat.chat.prompts import build_chat_messages
from pdfchat.chat.stream import TokenStream

if TYPE_CHECKING:
    from langchain_core.language_models import BaseChatModel
    from langchain_core.messages import BaseMessage

    from pdfchat.retrieval.models import ContextBlock

logger = logging.getLogger(__name__)


class ChatStreamingGateway:
    """Build the grounded prompt and stream the model's answer.

    Parameters
    ----------
    llm:
        Any LangChain chat model; production uses ``ChatOpenAI`` from
        :func:`pdfchat.chat.llm.get_llm`.
    """

    def __init__(self, llm: BaseChatModel) -> None:
        self._llm = llm

    def stream(self, history: Sequence[Mapping[str, Any]], context: ContextBlock) -> TokenStream:
        """Return a lazy :class:`TokenStream`; nothing is sent until it is iterated."""
        messages = build_chat_messages(history, context)
        logger.info(
            "Streaming answer for %d history messages with %d context chunks",
            len(history),
            context.chunk_count,
        )
        return TokenStream(self._tokens(messages))

    async def _tokens(self, messages: list[BaseMessage]) -> AsyncIterator[str]:
        # Closing this generator must also close the upstream HTTP stream.
        upstream = self._llm.astream(messages)
        async with aclosing(upstream):
            async for chunk in upstream:
                content = chunk.content
                if isinstance(content, str):
                    if content:
                        yield content
                    continue
                # Multi-part content: keep only the text parts.
                for part in content:
                    text = part if isinstance(part, str) else part.get("text", "")
                    if text:
                        yield text

"""
Chat — grounded prompt construction and streamed completions.

Public API
----------
- :class:`ChatStreamingGateway` — history + context → :class:`TokenStream`.
- :class:`TokenStream` — single-use, cancellable stream of answer tokens.
- :func:`build_system_prompt` / :func:`build_chat_messages` — prompt assembly.
"""

from pdfchat.chat.gateway import ChatStreamingGateway
from pdfchat.chat.prompts import build_chat_messages, build_system_prompt
from pdfchat.chat.stream import ERROR_MARKER, StreamState, TokenStream

__all__ = [
    "ERROR_MARKER",
    "ChatStreamingGateway",
    "StreamState",
    "TokenStream",
    "build_chat_messages",
    "build_system_prompt",
]

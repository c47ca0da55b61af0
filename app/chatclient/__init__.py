"""
Python client for the chat backend.

This package handles:
- Optimistic sends and reconciliation with server echoes (ConversationView)
- The WebSocket connection with join-on-connect and acknowledgements
  (ChatConnection)
- REST calls for friends, history and read receipts (ChatApiClient)
- Typing indicators with a short expiry window (TypingIndicator)

Usage:
    from chatclient import ChatApiClient, ChatConnection, ChatSession

    api = await ChatApiClient.login("http://localhost:8000", email, password)
    connection = ChatConnection("http://localhost:8000", api.token, api.user_id)
    session = ChatSession(api.user_id, connection, api)
    await session.start()
    await session.select_partner(friend_id)
    await session.send("hi")

Note:
    Nothing here imports Django; the client runs in any asyncio program.
"""

from .api import ChatApiClient
from .connection import ChatConnection
from .exceptions import ApiError, ChatClientError, SendFailedError, TransportError
from .reconciliation import ConversationView, InFlightRegistry, LocalMessage, MessageState
from .session import ChatSession
from .typing_state import TypingIndicator

__all__ = [
    "ApiError",
    "ChatApiClient",
    "ChatClientError",
    "ChatConnection",
    "ChatSession",
    "ConversationView",
    "InFlightRegistry",
    "LocalMessage",
    "MessageState",
    "SendFailedError",
    "TransportError",
    "TypingIndicator",
]

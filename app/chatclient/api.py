"""
REST client for the chat backend.

Covers what the socket does not: login, the friend list, conversation
history and unread counts. Every call is bearer-authenticated with the
access token obtained at login.

Usage:
    api = await ChatApiClient.login("http://localhost:8000", "ana@example.com", "pw")
    friends = await api.friends()
    history = await api.history(friends[0]["id"])
    await api.close()
"""

from __future__ import annotations

import logging

import aiohttp

from .constants import CLIENT_CONFIG
from .exceptions import ApiError, TransportError

logger = logging.getLogger(__name__)


class ChatApiClient:
    """
    Thin async wrapper over /api/v1/.

    Attributes:
        base_url: Server root, e.g. "http://localhost:8000"
        token: JWT access token
        user: Current user as returned by login, if logged in through login()
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        session: aiohttp.ClientSession | None = None,
        user: dict | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.user = user
        self._session = session
        self._owns_session = session is None

    @property
    def user_id(self) -> str | None:
        return str(self.user["id"]) if self.user else None

    @classmethod
    async def login(
        cls,
        base_url: str,
        email: str,
        password: str,
        session: aiohttp.ClientSession | None = None,
    ) -> ChatApiClient:
        """
        Exchange credentials for a token pair and return an authenticated client.

        Raises:
            ApiError: Bad credentials (401) or validation errors (400)
        """
        client = cls(base_url, token="", session=session)
        data = await client._request("POST", "/auth/login/", json={"email": email, "password": password}, auth=False)
        client.token = data["access"]
        client.user = data.get("user")
        return client

    # -------------------------------------------------------------------------
    # Endpoints
    # -------------------------------------------------------------------------

    async def me(self) -> dict:
        return await self._request("GET", "/auth/me/")

    async def friends(self) -> list[dict]:
        return await self._request("GET", "/friends/")

    async def history(self, user_id) -> list[dict]:
        """Messages with user_id, oldest first, in the server's wire form."""
        return await self._request("GET", f"/chat/messages/with/{user_id}/")

    async def send_message(self, to, content: str, client_id: str | None = None) -> dict:
        body = {"to": str(to), "content": content}
        if client_id:
            body["client_id"] = client_id
        return await self._request("POST", "/chat/messages/", json=body)

    async def mark_read(self, message_id: int) -> dict:
        return await self._request("POST", f"/chat/messages/{message_id}/read/")

    async def unread(self) -> dict:
        return await self._request("GET", "/chat/messages/unread/")

    async def presence(self, user_id) -> dict:
        return await self._request("GET", f"/chat/presence/{user_id}/")

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    async def _request(self, method: str, path: str, json=None, auth: bool = True):
        if self._session is None:
            self._session = aiohttp.ClientSession()

        url = f"{self.base_url}{CLIENT_CONFIG.API_PREFIX}{path}"
        headers = {"Authorization": f"Bearer {self.token}"} if auth else {}
        try:
            async with self._session.request(method, url, json=json, headers=headers) as response:
                if response.status >= 400:
                    detail = await self._error_detail(response)
                    logger.warning("%s %s -> %s", method, path, response.status)
                    raise ApiError(
                        detail.get("error") or detail.get("detail") or f"HTTP {response.status}",
                        status=response.status,
                        error_code=detail.get("error_code"),
                        details=detail,
                    )
                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    raise TransportError(
                        f"{method} {path} returned a non-JSON body", error_code="INVALID_RESPONSE"
                    ) from e
        except aiohttp.ClientError as e:
            raise TransportError(f"{method} {path} failed: {e}", error_code="HTTP_TRANSPORT") from e

    @staticmethod
    async def _error_detail(response: aiohttp.ClientResponse) -> dict:
        """JSON error body as a dict; {} for HTML error pages and empty bodies."""
        try:
            data = await response.json(content_type=None)
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

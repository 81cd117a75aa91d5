"""
backend/app/client/battle_client.py

Purpose:
    Async HTTP client for the /api/battle endpoints. Each instance owns its
    own httpx.AsyncClient, base URL and session cookie; nothing is shared at
    module level and nothing is retried automatically.

Dependencies:
    - httpx
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger("nova.battle_client")

SESSION_COOKIE = "access_token"


class BattleApiError(Exception):
    """Non-2xx response (or transport failure, status_code=None)."""

    def __init__(self, status_code: Optional[int], message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}" if status_code else message)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("message") or body.get("detail") or response.reason_phrase)
    return response.reason_phrase


class BattleClient:
    def __init__(
        self,
        base_url: str,
        session_token: Optional[str] = None,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        cookies = {SESSION_COOKIE: session_token} if session_token else None
        self._client = httpx.AsyncClient(
            base_url=base_url,
            cookies=cookies,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "BattleClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("Battle API %s %s failed: %s", method, path, exc)
            raise BattleApiError(None, f"Network error: {exc}") from exc

        if resp.status_code >= 400:
            message = _error_message(resp)
            logger.warning("Battle API %s %s -> %d: %s", method, path, resp.status_code, message)
            raise BattleApiError(resp.status_code, message)
        return resp.json()

    async def create_battle(self, battle_name: str, tags: list[str]) -> dict[str, Any]:
        return await self._request(
            "POST", "/api/battle/create", json={"battleName": battle_name, "tags": tags},
        )

    async def join_battle(self, battle_code: str) -> dict[str, Any]:
        return await self._request("POST", "/api/battle/join", json={"battleCode": battle_code})

    async def list_battles(self, limit: Optional[int] = None) -> list[dict[str, Any]]:
        params = {"limit": limit} if limit else None
        data = await self._request("GET", "/api/battle/all", params=params)
        return data.get("battles", [])

    async def evaluate(
        self,
        battle_id: str,
        answers: list[dict[str, Any]],
        completion_time: float,
        username: Optional[str] = None,
        finalize: bool = False,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "battleId": battle_id,
            "answers": answers,
            "completionTime": completion_time,
            "finalize": finalize,
        }
        if username:
            payload["username"] = username
        return await self._request("POST", "/api/battle/evaluate", json=payload)

    async def analysis(self, battle_id: str) -> dict[str, Any]:
        return await self._request("POST", "/api/battle/analysis", json={"battleId": battle_id})

    async def history(self, limit: int = 20, offset: int = 0) -> dict[str, Any]:
        return await self._request(
            "GET", "/api/battle/battlehist", params={"limit": limit, "offset": offset},
        )

"""
Push channel: multicast to a user's device tokens through an HTTP push gateway.

The gateway answers with one result per token, in request order:

    {"responses": [{"success": true}, {"success": false, "error": "..."}]}

Tokens that failed are returned to the caller so they can be pruned.
"""

from __future__ import annotations

import uuid
from typing import Any, Optional

import httpx
import structlog

from app.core.config import Settings
from app.core.errors import DispatchError

log = structlog.get_logger()


class HttpPushSender:
    """Posts multicast push requests to the configured gateway."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None):
        self.enabled = settings.push_enabled and bool(settings.push_endpoint)
        self.endpoint = settings.push_endpoint
        self._api_key = settings.push_api_key
        self._timeout = settings.push_timeout_seconds
        self._client = client

    async def open(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def send(
        self,
        user_id: uuid.UUID,
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
        *,
        tokens: list[str],
    ) -> Optional[list[str]]:
        """Push to every token; returns the tokens the gateway rejected, or None when disabled."""
        if not self.enabled:
            log.warning("push.disabled", user_id=str(user_id))
            return None
        if not tokens:
            return []

        await self.open()
        payload = {
            "notification": {"title": title, "body": body},
            # Gateways only accept string data values
            "data": {key: str(value) for key, value in (data or {}).items()},
            "tokens": tokens,
        }
        headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}

        try:
            resp = await self._client.post(self.endpoint, json=payload, headers=headers)
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError as exc:
            raise DispatchError(
                f"Push gateway returned {exc.response.status_code}", channel="push"
            )
        except httpx.RequestError as exc:
            raise DispatchError(f"Push gateway unreachable: {exc}", channel="push")
        except ValueError:
            raise DispatchError("Push gateway returned a non-JSON body", channel="push")

        results = body.get("responses") if isinstance(body, dict) else None
        if not isinstance(results, list) or not all(isinstance(r, dict) for r in results):
            raise DispatchError("Push gateway returned a malformed response", channel="push")

        failed = []
        for token, result in zip(tokens, results):
            if not result.get("success", False):
                failed.append(token)
                log.warning("push.token_rejected", user_id=str(user_id), error=result.get("error"))

        log.info("push.sent", user_id=str(user_id), tokens=len(tokens), failed=len(failed))
        return failed

"""Shared Azure credential and bearer token cache."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from azure.identity.aio import DefaultAzureCredential

logger = logging.getLogger(__name__)

# Refresh tokens this many seconds before they expire
_EXPIRY_MARGIN_SECONDS = 60


class BearerTokenProvider:
    """Hands out bearer tokens per scope, refreshing them shortly before expiry."""

    def __init__(self, credential: Any):
        self._credential = credential
        self._tokens: dict[str, tuple[str, float]] = {}
        self._lock = asyncio.Lock()

    async def get_token(self, scope: str) -> str:
        cached = self._tokens.get(scope)
        if cached and cached[1] - _EXPIRY_MARGIN_SECONDS > time.time():
            return cached[0]

        async with self._lock:
            cached = self._tokens.get(scope)
            if cached and cached[1] - _EXPIRY_MARGIN_SECONDS > time.time():
                return cached[0]
            access_token = await self._credential.get_token(scope)
            self._tokens[scope] = (access_token.token, float(access_token.expires_on))
            logger.debug("Acquired bearer token for scope %s", scope)
            return access_token.token

    async def auth_headers(self, scope: str) -> dict[str, str]:
        token = await self.get_token(scope)
        return {"Authorization": f"Bearer {token}"}

    async def close(self) -> None:
        close = getattr(self._credential, "close", None)
        if close is not None:
            await close()


_provider: BearerTokenProvider | None = None


def get_token_provider() -> BearerTokenProvider:
    """Get or create the process-wide token provider."""
    global _provider

    if _provider is None:
        _provider = BearerTokenProvider(DefaultAzureCredential())

    return _provider


async def close_token_provider() -> None:
    global _provider

    if _provider is not None:
        await _provider.close()
        _provider = None

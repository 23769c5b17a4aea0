"""
Authenticator - bearer token lifecycle on top of TokenStore.

Token acquisition is single-flight: concurrent callers that all find the
store empty wait on one lock, and only the first performs the exchange.
A forced refresh after a 401 skips the exchange when another caller has
already replaced the rejected token.
"""

import asyncio

from loguru import logger

from verteil.services.errors import ConfigurationError
from verteil.services.token_store import TokenStore
from verteil.services.transport import HttpTransport

# Seconds shaved off the server-reported lifetime
EXPIRY_MARGIN_SECONDS = 60


class Authenticator:
    """Supplies a valid bearer token, exchanging credentials when needed."""

    def __init__(
        self,
        transport: HttpTransport,
        token_store: TokenStore,
        username: str,
        password: str,
        token_ttl_minutes: float = 55,
    ):
        self._transport = transport
        self._token_store = token_store
        self._username = username
        self._password = password
        self._token_ttl_minutes = token_ttl_minutes
        self._lock = asyncio.Lock()
        self.exchange_count = 0

    async def get_token(self) -> str:
        """Return the stored token, authenticating first if there is none."""
        token = await self._token_store.retrieve()
        if token:
            return token

        async with self._lock:
            token = await self._token_store.retrieve()
            if token:
                return token
            return await self._exchange()

    async def refresh(self, rejected_token: str | None) -> str:
        """Discard ``rejected_token`` and return a fresh one."""
        async with self._lock:
            current = await self._token_store.retrieve()
            if current and current != rejected_token:
                logger.debug("Token already refreshed by a concurrent request")
                return current
            await self._token_store.clear()
            return await self._exchange()

    def _ttl_minutes(self, expires_in: float | None) -> float:
        if not expires_in:
            return self._token_ttl_minutes
        if expires_in > EXPIRY_MARGIN_SECONDS * 2:
            expires_in -= EXPIRY_MARGIN_SECONDS
        return expires_in / 60

    async def _exchange(self) -> str:
        if not self._username or not self._password:
            raise ConfigurationError(
                "Verteil credentials are not configured "
                "(set VERTEIL_USERNAME and VERTEIL_PASSWORD)"
            )

        self.exchange_count += 1
        token, expires_in = await self._transport.authenticate(self._username, self._password)
        ttl_minutes = self._ttl_minutes(expires_in)
        await self._token_store.store(token, ttl_minutes)
        logger.info(f"Authenticated with Verteil API (token valid for {ttl_minutes:.1f} min)")
        return token

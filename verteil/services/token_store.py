"""
TokenStore - encrypted bearer token persistence.

The token is Fernet-encrypted before it reaches the key-value store and
expires with the store key. Any failure to read it back (absent, expired,
tampered, wrong key) is reported as "no token" so the caller simply
re-authenticates.
"""

import time
from collections.abc import Callable

from cryptography.fernet import Fernet, InvalidToken
from loguru import logger

from verteil.services.errors import ConfigurationError
from verteil.services.store import NAMESPACE, KeyValueStore

TOKEN_KEY = f"{NAMESPACE}token"
TOKEN_EXPIRY_KEY = f"{NAMESPACE}token_expiry"


class TokenStore:
    """
    Stores a single bearer token for the configured credentials.

    Usage:
        tokens = TokenStore(store, encryption_key=settings.encryption_key)
        await tokens.store("abc123", ttl_minutes=55)
        token = await tokens.retrieve()
    """

    def __init__(
        self,
        store: KeyValueStore,
        encryption_key: str | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._clock = clock
        if not encryption_key:
            logger.warning(
                "VERTEIL_ENCRYPTION_KEY not set, using a generated key; "
                "stored tokens will not survive a restart"
            )
            encryption_key = Fernet.generate_key().decode()
        try:
            self._fernet = Fernet(encryption_key)
        except ValueError as e:
            raise ConfigurationError(
                "VERTEIL_ENCRYPTION_KEY must be a url-safe base64 encoded 32-byte key"
            ) from e

    async def store(self, token: str, ttl_minutes: float) -> None:
        """Encrypt and persist ``token``, replacing any previous one."""
        ttl_seconds = ttl_minutes * 60
        encrypted = self._fernet.encrypt(token.encode()).decode()
        await self._store.set(TOKEN_KEY, encrypted, ttl_seconds)
        await self._store.set(TOKEN_EXPIRY_KEY, self._clock() + ttl_seconds, ttl_seconds)
        logger.debug(f"Stored API token (expires in {ttl_minutes:.1f} min)")

    async def retrieve(self) -> str | None:
        encrypted = await self._store.get(TOKEN_KEY)
        if not encrypted:
            return None

        try:
            return self._fernet.decrypt(encrypted.encode()).decode()
        except (InvalidToken, ValueError, AttributeError):
            logger.warning("Stored API token could not be decrypted, discarding it")
            await self.clear()
            return None

    async def has_valid(self) -> bool:
        return await self.retrieve() is not None

    async def clear(self) -> None:
        await self._store.delete(TOKEN_KEY)
        await self._store.delete(TOKEN_EXPIRY_KEY)

    async def expires_at(self) -> float | None:
        """Unix timestamp at which the stored token expires."""
        return await self._store.get(TOKEN_EXPIRY_KEY)

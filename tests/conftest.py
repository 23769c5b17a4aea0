from collections.abc import Callable, Iterator

import httpx
import pytest
from cryptography.fernet import Fernet
from loguru import logger

from tests.fakes import BASE_URL, FakeClock, FakeVerteilApi
from verteil.services.client import VerteilClient
from verteil.services.store import MemoryStore
from verteil.services.transport import HttpTransport
from verteil.settings import Settings


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> MemoryStore:
    return MemoryStore(clock=clock)


@pytest.fixture
def encryption_key() -> str:
    return Fernet.generate_key().decode()


@pytest.fixture
def settings(encryption_key) -> Settings:
    return Settings(
        username="agent",
        password="secret",
        base_url=BASE_URL,
        office_id="OFFICE1",
        encryption_key=encryption_key,
        retry_delay_ms=1,
    )


@pytest.fixture
def fake_api() -> FakeVerteilApi:
    return FakeVerteilApi()


@pytest.fixture
def no_sleep() -> Callable:
    delays: list[float] = []

    async def sleep(seconds: float) -> None:
        delays.append(seconds)

    sleep.delays = delays
    return sleep


@pytest.fixture
def log_messages() -> Iterator[list[str]]:
    """Collect loguru messages at WARNING and above."""
    messages: list[str] = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="WARNING")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def make_client(settings, store, clock, no_sleep):
    """Build a VerteilClient wired to a FakeVerteilApi."""
    from verteil.services.retry import RetryPolicy

    def _make(api: FakeVerteilApi, **overrides) -> VerteilClient:
        client_settings = settings.model_copy(update=overrides) if overrides else settings
        transport = HttpTransport(
            BASE_URL,
            http_client=httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(api.handler)),
        )
        retry_policy = RetryPolicy(
            max_attempts=client_settings.retry_max_attempts,
            base_delay=client_settings.retry_delay_ms / 1000,
            multiplier=client_settings.retry_multiplier,
            sleep=no_sleep,
        )
        return VerteilClient(
            client_settings,
            store=store,
            transport=transport,
            retry_policy=retry_policy,
            clock=clock,
        )

    return _make


@pytest.fixture
def air_shopping_params() -> dict:
    return {
        "coreQuery": {
            "originDestinations": [
                {
                    "departureAirport": "SIN",
                    "arrivalAirport": "LHR",
                    "departureDate": "2026-12-01",
                    "key": "OD1",
                }
            ]
        },
        "travelers": [{"passengerType": "ADT"}, {"passengerType": "CHD"}],
        "preference": {"cabin": "Y", "fareTypes": ["PUBL"]},
    }


@pytest.fixture
def order_retrieve_params() -> dict:
    return {"owner": "SQ", "value": "ABC123"}

"""Fakes shared by unit and integration tests."""

import json
import time

import httpx

BASE_URL = "https://api.test.verteil.local"
TOKEN_PATH = "/oauth2/token"


class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeVerteilApi:
    """
    Scripted upstream for httpx.MockTransport.

    ``responses`` is consumed per NDC call; the last entry repeats.
    Each entry is (status_code, json_body).
    ``token_statuses`` is consumed per token call, then ``token_status`` applies.
    ``latency`` blocks every NDC call for that many seconds.
    """

    def __init__(
        self,
        responses: list[tuple[int, dict]] | None = None,
        token_status: int = 200,
        token_statuses: list[int] | None = None,
        latency: float = 0.0,
    ):
        self.responses = list(responses or [(200, {"ok": True})])
        self.token_status = token_status
        self.token_statuses = list(token_statuses or [])
        self.latency = latency
        self.token_calls = 0
        self.calls: list[httpx.Request] = []
        self._issued = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == TOKEN_PATH:
            self.token_calls += 1
            status = self.token_statuses.pop(0) if self.token_statuses else self.token_status
            if status >= 500:
                return httpx.Response(status, json={"error": "temporarily_unavailable"})
            if status != 200:
                return httpx.Response(status, json={"error": "invalid_client"})
            self._issued += 1
            return httpx.Response(200, json={"access_token": f"token-{self._issued}", "expires_in": 3600})

        self.calls.append(request)
        if self.latency:
            time.sleep(self.latency)
        index = min(len(self.calls) - 1, len(self.responses) - 1)
        status, body = self.responses[index]
        return httpx.Response(status, json=body)

    def body(self, index: int = -1) -> dict:
        return json.loads(self.calls[index].content)

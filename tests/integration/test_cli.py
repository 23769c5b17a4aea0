import asyncio

import pytest
from typer.testing import CliRunner

from verteil.cli import app
from verteil.services.client import VerteilClient
from verteil.services.errors import ConfigurationError


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def build_client(mocker, settings, store, clock):
    """Point the CLI at a client sharing the test store."""
    return mocker.patch(
        "verteil.cli._build_client",
        side_effect=lambda: VerteilClient(settings, store=store, clock=clock),
    )


def test_health_when_idle(runner, build_client):
    result = runner.invoke(app, ["health"])

    assert result.exit_code == 0, result.output
    assert "Overall status: healthy" in result.output
    assert "Rate Limits" in result.output
    assert "Token: missing" in result.output


def test_health_fails_on_high_error_rate(runner, build_client, settings, store, clock):
    async def record_failures():
        client = VerteilClient(settings, store=store, clock=clock)
        for _ in range(5):
            await client.monitor.record_metric("airShopping", 120.0, 503)

    asyncio.run(record_failures())

    result = runner.invoke(app, ["health"])

    assert result.exit_code == 1
    assert "Overall status: critical" in result.output
    assert "airShopping" in result.output


def test_health_reports_configuration_errors(runner, mocker):
    mocker.patch("verteil.cli._build_client", side_effect=ConfigurationError("bad rate limits"))

    result = runner.invoke(app, ["health"])

    assert result.exit_code == 1
    assert "Health check failed: bad rate limits" in result.output


def test_cache_flush_endpoint(runner, build_client, settings, store, clock):
    async def fill_cache():
        client = VerteilClient(settings, store=store, clock=clock)
        await client.cache.put("airShopping", {"q": 1}, {"offers": []})
        await client.cache.put("airShopping", {"q": 2}, {"offers": []})
        await client.cache.put("serviceList", {"q": 1}, {"services": []})

    asyncio.run(fill_cache())

    result = runner.invoke(app, ["cache-flush", "airShopping"])

    assert result.exit_code == 0, result.output
    assert "Cache cleared for endpoint: airShopping (2 entries)" in result.output

    result = runner.invoke(app, ["cache-flush"])

    assert result.exit_code == 0, result.output
    assert "Cache cleared for all endpoints (1 entries)" in result.output


def test_cache_flush_unknown_endpoint(runner, build_client):
    result = runner.invoke(app, ["cache-flush", "orderReshop"])

    assert result.exit_code == 1
    assert "Unknown endpoint" in result.output

"""Unit tests for operator startup and shutdown."""

import kopf
import logging
import pytest
from unittest.mock import AsyncMock, Mock
import wildfly.app as app
from wildfly.resources import WildflyAppServer
from wildfly.sensors import OperatorSensor
from wildfly.types.settings import Settings


@pytest.fixture
def startup(monkeypatch):
    """Run startup against stubbed cluster config, API client and metrics."""
    monkeypatch.setattr(app.config, "load_incluster_config", Mock())
    monkeypatch.setattr(app, "ApiClient", Mock(return_value=Mock(close=AsyncMock())))
    monkeypatch.setattr(app, "init_metrics_server", Mock())
    monkeypatch.setattr(app, "PrometheusMonitor", Mock(spec=OperatorSensor))
    monkeypatch.setattr(WildflyAppServer, "conf", WildflyAppServer.conf)
    monkeypatch.setattr(WildflyAppServer, "sensor", WildflyAppServer.sensor)
    monkeypatch.setattr(WildflyAppServer, "shared_api_client", None)

    async def _startup(conf, settings=None):
        monkeypatch.setattr(app, "Settings", Mock(return_value=conf))
        await app.setup(settings=settings or kopf.OperatorSettings(), logger=Mock())

    return _startup


class TestSetup:
    @pytest.mark.asyncio
    async def test_settings_published_on_resource_class(self, startup):
        conf = Settings(address_resolution_mode="watch", metrics_enabled=False)

        await startup(conf)

        assert WildflyAppServer.conf is conf
        assert WildflyAppServer.shared_api_client is not None
        assert len(WildflyAppServer.sensor) == 0
        app.init_metrics_server.assert_not_called()

    @pytest.mark.asyncio
    async def test_metrics_enabled(self, startup):
        conf = Settings(metrics_enabled=True, metrics_port=9102, worker_limit=4)
        settings = kopf.OperatorSettings()

        await startup(conf, settings)

        assert len(WildflyAppServer.sensor) == 1
        app.init_metrics_server.assert_called_once_with(9102)
        assert settings.batching.worker_limit == 4
        assert settings.posting.level == logging.WARNING

    @pytest.mark.asyncio
    async def test_cleanup_closes_shared_client(self, startup):
        await startup(Settings(metrics_enabled=False))
        client = WildflyAppServer.shared_api_client

        await app.cleanup(logger=Mock())

        client.close.assert_awaited_once()
        assert WildflyAppServer.shared_api_client is None

"""Unit tests for the WildflyAppServer kopf handlers."""

import logging
import kopf
import pytest
from conftest import (
    NAME,
    NAMESPACE,
    UID,
    FakeStopped,
    api_exception,
    live_deployment,
    live_service,
)
from wildfly.handlers.wildflyappserver import (
    load_app,
    periodic_reconciliation,
    reconcile,
    reconciliation,
    resolve_external_addresses,
)
from wildfly.resources import WildflyAppServer

logger = logging.getLogger("test")

ADDRESSES = {"application": "lb.example.com:8080", "management": "lb.example.com:9990"}
READY = {
    "type": "Ready",
    "status": "True",
    "reason": "Reconciled",
    "message": "WildFly cluster reconciled",
    "observedGeneration": 4,
    "lastTransitionTime": "2026-01-01T00:00:00+00:00",
}


def handler_kwargs(spec=None, status=None, labels=None):
    return dict(
        name=NAME,
        namespace=NAMESPACE,
        spec=spec or {"nodeCount": 3, "image": "img:1"},
        meta={"generation": 4},
        status=status or {},
        labels=labels or {},
        uid=UID,
        patch=kopf.Patch(),
        logger=logger,
    )


class TestLoadApp:
    def test_invalid_spec_is_permanent(self, wire):
        with pytest.raises(kopf.PermanentError):
            load_app(NAME, NAMESPACE, {"nodeCount": 3})

    def test_null_data_source_is_permanent(self, wire):
        spec = {"nodeCount": 1, "image": "i", "dataSourceConfig": {"db": None}}
        with pytest.raises(kopf.PermanentError):
            load_app(NAME, NAMESPACE, spec)

    def test_builds_resource(self, wire):
        app = load_app(NAME, NAMESPACE, {"nodeCount": 1, "image": "i"}, {"a": "b"}, UID)
        assert app.node_count == 1
        assert app.labels.as_dict() == {"appName": NAME, "a": "b"}
        assert app.uid == UID


class TestReconcile:
    @pytest.mark.asyncio
    async def test_converged_cluster_writes_nothing(self, wire):
        wire.with_deployment(live_deployment(3))
        wire.with_service(live_service(hostname="lb.example.com"))
        wire.with_pods("wf-0")
        kwargs = handler_kwargs(
            status={
                "nodes": ["wf-0"],
                "externalAddresses": ADDRESSES,
                "conditions": [READY],
            }
        )

        await reconcile("timer", **kwargs)

        assert kwargs["patch"] == {}
        assert wire.writes() == []

    @pytest.mark.asyncio
    async def test_changes_applied_to_patch(self, wire):
        wire.with_pods("wf-0", "wf-1")
        kwargs = handler_kwargs(
            spec={
                "nodeCount": 2,
                "image": "img:1",
                "dataSourceConfig": {
                    "db": {"hostName": "h", "databaseName": "d", "jndiName": "j"}
                },
            }
        )

        await reconcile("create", **kwargs)

        patch = kwargs["patch"]
        assert patch["spec"] == {"configSource": {"name": NAME, "key": "standalone.xml"}}
        assert patch["status"]["nodes"] == ["wf-0", "wf-1"]
        (condition,) = patch["status"]["conditions"]
        assert condition["type"] == "Ready"
        assert condition["status"] == "True"
        assert condition["observedGeneration"] == 4

    @pytest.mark.asyncio
    async def test_api_failure_is_temporary(self, wire, conf):
        wire.apps.read_namespaced_deployment.side_effect = api_exception(500)
        kwargs = handler_kwargs()

        with pytest.raises(kopf.TemporaryError) as exc_info:
            await reconcile("update", **kwargs)

        assert exc_info.value.delay == conf.retry_delay_seconds
        (condition,) = kwargs["patch"]["status"]["conditions"]
        assert condition["status"] == "False"

    @pytest.mark.asyncio
    async def test_render_failure_is_temporary(self, wire, conf, tmp_path):
        template = tmp_path / "empty.xml.j2"
        template.write_text("   ")
        conf.config_template_path = str(template)
        kwargs = handler_kwargs(
            spec={
                "nodeCount": 1,
                "image": "img:1",
                "dataSourceConfig": {
                    "db": {"hostName": "h", "databaseName": "d", "jndiName": "j"}
                },
            }
        )

        with pytest.raises(kopf.TemporaryError):
            await reconcile("create", **kwargs)

        wire.core.create_namespaced_config_map.assert_not_awaited()
        wire.apps.create_namespaced_deployment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_spec_is_permanent(self, wire):
        kwargs = handler_kwargs(spec={"image": "img:1"})
        with pytest.raises(kopf.PermanentError):
            await reconcile("create", **kwargs)
        assert kwargs["patch"]["status"]["conditions"][0]["status"] == "False"

    @pytest.mark.asyncio
    async def test_change_handler_uses_reason(self, wire, monkeypatch):
        started = []

        def on_reconcile_start(name, namespace, generation, trigger_source):
            started.append(trigger_source)

        monkeypatch.setattr(
            WildflyAppServer.sensor, "on_reconcile_start", on_reconcile_start
        )
        await reconciliation(reason=kopf.Reason.CREATE, **handler_kwargs())
        await periodic_reconciliation(**handler_kwargs())
        assert started == ["create", "timer"]


class TestResolveExternalAddresses:
    @pytest.mark.asyncio
    async def test_skips_recorded_addresses(self, wire):
        kwargs = handler_kwargs(status={"externalAddresses": ADDRESSES})
        kwargs.pop("patch")
        await resolve_external_addresses(stopped=FakeStopped(), **kwargs)
        wire.core.read_namespaced_service.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_resolves_after_resync(self, wire, conf):
        conf.address_resolution_max_attempts = 1
        conf.address_resolution_interval_seconds = 0
        conf.address_resync_interval_seconds = 0
        wire.core.read_namespaced_service.side_effect = [
            live_service(),
            live_service(hostname="lb.example.com"),
        ]
        stopped = FakeStopped()
        kwargs = handler_kwargs()
        kwargs.pop("patch")

        await resolve_external_addresses(stopped=stopped, **kwargs)

        assert wire.core.read_namespaced_service.await_count == 2
        wire.custom.patch_namespaced_custom_object_status.assert_awaited_once()
        body = wire.custom.patch_namespaced_custom_object_status.await_args.kwargs["body"]
        assert body == {"status": {"externalAddresses": ADDRESSES}}

    @pytest.mark.asyncio
    async def test_stops_when_recorded_meanwhile(self, wire, conf):
        conf.address_resolution_max_attempts = 1
        conf.address_resync_interval_seconds = 0
        wire.with_service(live_service())
        wire.with_custom_object({"status": {"externalAddresses": ADDRESSES}})
        kwargs = handler_kwargs()
        kwargs.pop("patch")

        await resolve_external_addresses(stopped=FakeStopped(), **kwargs)

        assert wire.core.read_namespaced_service.await_count == 1
        wire.custom.patch_namespaced_custom_object_status.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancelled_by_stop_token(self, wire, conf):
        wire.with_service(live_service())
        kwargs = handler_kwargs()
        kwargs.pop("patch")

        await resolve_external_addresses(stopped=FakeStopped(stop_after=1), **kwargs)

        assert wire.core.read_namespaced_service.await_count == 1
        wire.custom.patch_namespaced_custom_object_status.assert_not_awaited()

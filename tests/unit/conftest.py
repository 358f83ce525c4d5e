"""Shared fixtures for WildflyAppServer unit tests."""

import json
import pytest
from unittest.mock import AsyncMock
from kubernetes_asyncio.client import (
    ApiException,
    V1Deployment,
    V1DeploymentSpec,
    V1LabelSelector,
    V1LoadBalancerIngress,
    V1LoadBalancerStatus,
    V1ObjectMeta,
    V1Pod,
    V1PodList,
    V1PodTemplateSpec,
    V1Service,
    V1ServiceStatus,
)
from wildfly.resources import WildflyAppServer
from wildfly.sensors import SensorDelegate
from wildfly.types.schemas import WildflyAppServerSpecSchema
from wildfly.types.settings import Settings

NAME = "wf"
NAMESPACE = "apps"
UID = "0b6f3c4e-uid"


def make_spec(**overrides):
    data = {"nodeCount": 3, "image": "img:1"}
    data.update(overrides)
    return WildflyAppServerSpecSchema().load(data)


def api_exception(status: int, reason: str = None) -> ApiException:
    ex = ApiException(status=status, reason="error")
    if reason is not None:
        ex.body = json.dumps({"reason": reason, "message": f"{reason} happened"})
    return ex


def live_deployment(replicas: int) -> V1Deployment:
    return V1Deployment(
        metadata=V1ObjectMeta(name=NAME, namespace=NAMESPACE),
        spec=V1DeploymentSpec(
            replicas=replicas,
            selector=V1LabelSelector(match_labels={"appName": NAME}),
            template=V1PodTemplateSpec(),
        ),
    )


def live_service(hostname: str = None, ip: str = None) -> V1Service:
    ingress = []
    if hostname or ip:
        ingress.append(V1LoadBalancerIngress(hostname=hostname, ip=ip))
    return V1Service(
        metadata=V1ObjectMeta(name=NAME, namespace=NAMESPACE),
        status=V1ServiceStatus(load_balancer=V1LoadBalancerStatus(ingress=ingress)),
    )


def pod_list(*names: str) -> V1PodList:
    return V1PodList(items=[V1Pod(metadata=V1ObjectMeta(name=n)) for n in names])


class FakeStopped:
    """Stand-in for kopf's daemon stop token."""

    def __init__(self, stop_after: int = None):
        self.stop_after = stop_after
        self.waits = []
        self._stopped = False

    def __bool__(self):
        return self._stopped

    async def wait(self, timeout=None):
        self.waits.append(timeout)
        if self.stop_after is not None and len(self.waits) >= self.stop_after:
            self._stopped = True
        return self._stopped


class FakeCluster:
    """Mocked Kubernetes APIs describing the live state of one cluster."""

    def __init__(self):
        self.apps = AsyncMock()
        self.core = AsyncMock()
        self.custom = AsyncMock()
        self.with_deployment(None)
        self.with_service(None)
        self.with_pods()
        self.with_custom_object({"status": {}})

    def with_deployment(self, deployment):
        if deployment is None:
            self.apps.read_namespaced_deployment.side_effect = api_exception(404)
        else:
            self.apps.read_namespaced_deployment.side_effect = None
            self.apps.read_namespaced_deployment.return_value = deployment
        return self

    def with_service(self, service):
        if service is None:
            self.core.read_namespaced_service.side_effect = api_exception(404)
        else:
            self.core.read_namespaced_service.side_effect = None
            self.core.read_namespaced_service.return_value = service
        return self

    def with_pods(self, *names):
        self.core.list_namespaced_pod.return_value = pod_list(*names)
        return self

    def with_custom_object(self, body):
        self.custom.get_namespaced_custom_object.return_value = body
        return self

    def writes(self):
        """All write calls issued against the cluster."""
        calls = [
            self.apps.create_namespaced_deployment,
            self.apps.patch_namespaced_deployment,
            self.core.create_namespaced_service,
            self.core.create_namespaced_config_map,
            self.custom.patch_namespaced_custom_object_status,
        ]
        return [c for c in calls if c.await_count]


@pytest.fixture
def conf():
    return Settings(
        address_resolution_mode="poll",
        member_list_ordered=True,
        retry_delay_seconds=7,
        config_template_path="",
    )


@pytest.fixture
def cluster():
    return FakeCluster()


@pytest.fixture
def wire(monkeypatch, cluster, conf):
    """Point every WildflyAppServer at the fake cluster."""
    monkeypatch.setattr(WildflyAppServer, "_apps_v1_api", cluster.apps)
    monkeypatch.setattr(WildflyAppServer, "_core_v1_api", cluster.core)
    monkeypatch.setattr(WildflyAppServer, "_custom_objects_api", cluster.custom)
    monkeypatch.setattr(WildflyAppServer, "conf", conf)
    monkeypatch.setattr(WildflyAppServer, "sensor", SensorDelegate())
    return cluster


@pytest.fixture
def make_app(wire):
    def _make(spec=None, status=None, labels=None, uid=UID):
        return WildflyAppServer.from_spec(
            NAME,
            NAMESPACE,
            spec or make_spec(),
            labels=labels,
            uid=uid,
            status=status,
        )

    return _make

import logging
from logging import Logger
from typing import Any, Awaitable, Dict, List, Optional
from kubernetes_asyncio.client import (
    AppsV1Api,
    CoreV1Api,
    CustomObjectsApi,
    V1ConfigMap,
    V1ConfigMapVolumeSource,
    V1Container,
    V1ContainerPort,
    V1Deployment,
    V1DeploymentSpec,
    V1DeploymentStrategy,
    V1EnvVar,
    V1EnvVarSource,
    V1HTTPGetAction,
    V1KeyToPath,
    V1LabelSelector,
    V1ObjectFieldSelector,
    V1ObjectMeta,
    V1OwnerReference,
    V1PodSpec,
    V1PodTemplateSpec,
    V1Probe,
    V1ResourceRequirements,
    V1RollingUpdateDeployment,
    V1SecretKeySelector,
    V1Service,
    V1ServicePort,
    V1ServiceSpec,
    V1Volume,
    V1VolumeMount,
)
from kubernetes_asyncio.client.api_client import ApiClient

from wildfly.common.models.labels import Labels
from wildfly.resources.address import external_addresses, service_ingress_host
from wildfly.resources.base import BaseResource
from wildfly.resources.status import addresses_changed, members_changed
from wildfly.sensors import SensorDelegate
from wildfly.types.models import (
    ConfigSource,
    WildflyAppServerResources,
    WildflyAppServerSpec,
)
from wildfly.types.settings import Settings
from wildfly.utils.templates import render_server_config


class WildflyAppServer(BaseResource):
    """WildflyAppServer kubernetes resource."""

    logger: Logger
    conf: Settings = Settings()
    sensor: SensorDelegate = SensorDelegate()
    shared_api_client: ApiClient = None  # Shared across all instances

    KIND = "WildflyAppServer"
    GROUP_NAME = "wildfly.banzaicloud.com"
    GROUP_VERSION = "v1alpha1"
    PLURAL_NAME = "wildflyappservers"

    APPLICATION_CONFIG = "standalone-full-ha-k8s.xml"
    CONFIG_MAP_KEY = "standalone.xml"
    CONFIG_VOLUME_NAME = "config-volume"
    CONFIG_MOUNT_PATH = (
        "/opt/jboss/wildfly/standalone/configuration/standalone-full-ha-k8s.xml"
    )

    HTTP_PORT_NAME = "http"
    HTTP_PORT = 8080
    MANAGEMENT_PORT_NAME = "management"
    MANAGEMENT_PORT = 9990
    JGROUPS_TCP_PORT_NAME = "jgroups-tcp"
    JGROUPS_TCP_PORT = 7600
    JGROUPS_TCP_FD_PORT_NAME = "jgroups-tcp-fd"
    JGROUPS_TCP_FD_PORT = 57600

    ADMIN_USER_ENV = "WILDFLY_ADMIN_USER"
    ADMIN_USER_KEY = "wildfly-admin-user"
    ADMIN_PASSWORD_ENV = "WILDFLY_ADMIN_PASSWORD"
    ADMIN_PASSWORD_KEY = "wildfly-admin-password"

    DEFAULT_CPU_REQUEST = "500m"
    DEFAULT_MEMORY_REQUEST = "512Mi"

    spec: WildflyAppServerSpec
    status: Dict[str, Any] = None
    deployment_name: str
    service_name: str
    config_map_name: str
    admin_secret_name: str
    container_name: str

    # k8s resources
    _api_client: ApiClient = None
    _apps_v1_api: AppsV1Api = None
    _core_v1_api: CoreV1Api = None
    _custom_objects_api: CustomObjectsApi = None
    _deployment: V1Deployment = None
    _service: V1Service = None
    _live_service: V1Service = None

    def __init__(
        self,
        name: str,
        namespace: str,
        labels: Optional[Dict[str, str]] = None,
        uid: Optional[str] = None,
    ):
        super().__init__(
            cluster=name,
            namespace=namespace,
            labels=Labels.generate_default_labels(name, labels),
            uid=uid,
        )
        self.logger = logging.getLogger(__name__)
        self.status = {}

    @classmethod
    def from_spec(
        self,
        name: str,
        namespace: str,
        spec: WildflyAppServerSpec,
        labels: Optional[Dict[str, str]] = None,
        uid: Optional[str] = None,
        status: Optional[Dict[str, Any]] = None,
        logger: Logger = None,
    ) -> "WildflyAppServer":
        app = WildflyAppServer(name, namespace, labels=labels, uid=uid)
        app.logger = logger or logging.getLogger(__name__)
        app.spec = spec
        app.status = dict(status or {})
        app.deployment_name = WildflyAppServerResources.deployment_name(name)
        app.service_name = WildflyAppServerResources.service_name(name)
        app.config_map_name = WildflyAppServerResources.config_map_name(name)
        app.admin_secret_name = WildflyAppServerResources.admin_secret_name(name)
        app.container_name = WildflyAppServerResources.container_name(name)
        return app

    @classmethod
    def default(self) -> "WildflyAppServer":
        """Resource without a spec, good for lookups."""
        return WildflyAppServer(name="default", namespace=None)

    @property
    def node_count(self) -> int:
        return self.spec.node_count

    @property
    def image(self) -> str:
        return self.spec.image

    @property
    def owner(self) -> Optional[V1OwnerReference]:
        return self.owner_reference(
            f"{self.GROUP_NAME}/{self.GROUP_VERSION}", self.KIND
        )

    async def synchronize(self) -> Dict[str, Dict[str, Any]]:
        """Converge child resources with the desired state of the cluster.

        Returns:
            Changes to apply on the custom resource, keyed by `spec` and
            `status`. Empty when the cluster is already converged.
        """
        changes = {
            "spec": await self.sync_config_map(),
            "status": {},
        }
        await self.sync_deployment()
        changes["status"].update(await self.sync_members())
        await self.sync_service()
        changes["status"].update(await self.sync_external_addresses())
        return {field: value for field, value in changes.items() if value}

    async def _instrumented(
        self, resource_type: str, name: str, operation: str, call: Awaitable
    ) -> Any:
        sensor_state = self.sensor.on_resource_sync_start(
            self.cluster, name, self.namespace, resource_type
        )
        success, error = True, None
        try:
            return await call
        except Exception as ex:
            success, error = False, ex
            raise
        finally:
            self.sensor.on_resource_sync_complete(
                self.cluster,
                name,
                self.namespace,
                resource_type,
                sensor_state,
                operation,
                success,
                error=error,
            )

    async def sync_config_map(self) -> Dict[str, Any]:
        """Render and create the configuration artifact when datasources call for one,
        then pin the cluster to it.

        Returns:
            Spec changes pinning the configuration source.
        """
        if not self.spec.renders_config:
            return {}
        config_map = self.prepare_config_map()
        created = await self._instrumented(
            "config_map",
            self.config_map_name,
            "create",
            self.create_config_map(self.core_v1_api, self.namespace, config_map),
        )
        if not created:
            self.logger.info(
                f"ConfigMap `{self.config_map_name}` already exists, pinning it."
            )
        self.spec.config_source = ConfigSource(
            name=self.config_map_name, key=self.CONFIG_MAP_KEY
        )
        # the deployment must mount the pinned configuration
        self._deployment = None
        return {"configSource": self.spec.config_source.as_dict()}

    async def sync_deployment(self) -> V1Deployment:
        """Create the deployment when missing and keep its replica count."""
        deployment = await self.fetch_deployment(
            self.apps_v1_api, self.deployment_name, self.namespace
        )
        if deployment is None:
            created = await self._instrumented(
                "deployment",
                self.deployment_name,
                "create",
                self.create_deployment(
                    self.apps_v1_api, self.namespace, self.deployment
                ),
            )
            if created:
                self.logger.info(f"Deployment `{self.deployment_name}` created.")
                return self.deployment
            deployment = await self.fetch_deployment(
                self.apps_v1_api, self.deployment_name, self.namespace
            )
            if deployment is None:
                return self.deployment

        if deployment.spec.replicas != self.node_count:
            self.sensor.on_resource_drift_detected(
                self.cluster,
                self.deployment_name,
                self.namespace,
                "deployment",
                ["spec.replicas"],
            )
            self.logger.info(
                f"Scaling `{self.deployment_name}` from "
                f"{deployment.spec.replicas} to {self.node_count} replicas."
            )
            await self._instrumented(
                "deployment",
                self.deployment_name,
                "patch",
                self.patch_deployment(
                    self.apps_v1_api,
                    self.deployment_name,
                    self.namespace,
                    self.prepare_deployment_replicas_patch(),
                ),
            )
            deployment.spec.replicas = self.node_count
        return deployment

    async def sync_members(self) -> Dict[str, Any]:
        """Status changes recording the names of the cluster's pods."""
        observed = await self.fetch_member_names()
        stored = self.status.get("nodes")
        if not members_changed(stored, observed, ordered=self.conf.member_list_ordered):
            return {}
        self.sensor.on_status_update(self.cluster, self.namespace, ["nodes"])
        return {"nodes": observed}

    async def sync_service(self) -> V1Service:
        service = await self.fetch_live_service()
        if service is None:
            created = await self._instrumented(
                "service",
                self.service_name,
                "create",
                self.create_service(self.core_v1_api, self.namespace, self.service),
            )
            if created:
                self.logger.info(f"Service `{self.service_name}` created.")
                service = self.service
            else:
                service = await self.fetch_live_service()
        self._live_service = service
        return service

    async def sync_external_addresses(self) -> Dict[str, Any]:
        """Status changes recording the external addresses.

        Only applies when addresses are learned from service events; in poll
        mode a resolver owns the resolution. A recorded address is never
        replaced.
        """
        if addresses_changed(self.status.get("externalAddresses"), None):
            return {}
        if not self.conf.watches_for_addresses:
            return {}
        host = service_ingress_host(self._live_service)
        if not host:
            return {}
        self.sensor.on_status_update(
            self.cluster, self.namespace, ["externalAddresses"]
        )
        return {"externalAddresses": external_addresses(host)}

    async def fetch(self, name: str, namespace: str) -> Optional[Dict]:
        """Fetch actual WildflyAppServer in kubernetes."""
        return await self.get_custom_object(
            self.custom_objects_api,
            namespace=namespace,
            group=self.GROUP_NAME,
            version=self.GROUP_VERSION,
            plural=self.PLURAL_NAME,
            name=name,
        )

    async def fetch_live_service(self) -> Optional[V1Service]:
        return await self.fetch_service(
            self.core_v1_api, self.service_name, self.namespace
        )

    async def fetch_member_names(self) -> List[str]:
        pods = await self.list_pods(
            self.core_v1_api, self.namespace, label_selector=self.labels.as_str()
        )
        return [pod.metadata.name for pod in pods.items or []]

    async def fetch_external_addresses(self) -> Optional[Dict[str, str]]:
        """Addresses currently recorded on the cluster, None if the cluster is gone."""
        body = await self.fetch(self.cluster, self.namespace)
        if body is None:
            return None
        return dict((body.get("status") or {}).get("externalAddresses") or {})

    async def commit_external_addresses(self, addresses: Dict[str, str]) -> bool:
        """Record external addresses on the cluster status unless some are already set.

        Returns:
            True if the status was patched.
        """
        current = await self.fetch_external_addresses()
        if current is None:
            self.logger.info(f"{self.KIND} `{self.cluster}` is gone, not recording address.")
            return False
        if addresses_changed(current, None):
            self.logger.debug(f"External addresses already recorded: {current}")
            return False
        await self.patch_custom_object_status(
            self.custom_objects_api,
            namespace=self.namespace,
            group=self.GROUP_NAME,
            version=self.GROUP_VERSION,
            plural=self.PLURAL_NAME,
            name=self.cluster,
            status={"externalAddresses": addresses},
        )
        self.status["externalAddresses"] = dict(addresses)
        self.sensor.on_status_update(
            self.cluster, self.namespace, ["externalAddresses"]
        )
        return True

    def prepare_deployment(self) -> V1Deployment:
        """Build deployment resource."""
        labels = self.labels.as_dict()
        deployment = V1Deployment(
            api_version="apps/v1",
            kind="Deployment",
            metadata=V1ObjectMeta(
                name=self.deployment_name, namespace=self.namespace, labels=labels
            ),
            spec=V1DeploymentSpec(
                replicas=self.node_count,
                selector=V1LabelSelector(match_labels=labels),
                strategy=V1DeploymentStrategy(
                    type="RollingUpdate",
                    rolling_update=V1RollingUpdateDeployment(
                        max_unavailable=1, max_surge=1
                    ),
                ),
                template=self.prepare_pod_template(),
            ),
        )
        return self.mark_owned(deployment, self.owner)

    def prepare_deployment_replicas_patch(self) -> Dict:
        return {"spec": {"replicas": self.node_count}}

    def prepare_pod_template(self) -> V1PodTemplateSpec:
        return V1PodTemplateSpec(
            metadata=V1ObjectMeta(labels=self.labels.as_dict()),
            spec=self.prepare_pod_spec(),
        )

    def prepare_pod_spec(self) -> V1PodSpec:
        return V1PodSpec(
            containers=[self.prepare_wildfly_container()],
            restart_policy="Always",
            volumes=self.prepare_volumes() or None,
        )

    def prepare_wildfly_container(self) -> V1Container:
        probes = self.prepare_container_probes()
        return V1Container(
            name=self.container_name,
            image=self.image,
            args=[f"--server-config={self.APPLICATION_CONFIG}"],
            ports=self.prepare_container_ports(),
            env=self.prepare_env_vars(),
            liveness_probe=probes["liveness_probe"],
            readiness_probe=probes["readiness_probe"],
            resources=self.prepare_container_resource_requirements(),
            volume_mounts=self.prepare_volume_mounts() or None,
        )

    def prepare_container_ports(self) -> List[V1ContainerPort]:
        return [
            V1ContainerPort(name=self.HTTP_PORT_NAME, container_port=self.HTTP_PORT),
            V1ContainerPort(
                name=self.MANAGEMENT_PORT_NAME, container_port=self.MANAGEMENT_PORT
            ),
            V1ContainerPort(
                name=self.JGROUPS_TCP_PORT_NAME, container_port=self.JGROUPS_TCP_PORT
            ),
            V1ContainerPort(
                name=self.JGROUPS_TCP_FD_PORT_NAME,
                container_port=self.JGROUPS_TCP_FD_PORT,
            ),
        ]

    def prepare_container_probes(self) -> Dict[str, V1Probe]:
        application_path = (self.spec.application_path or "").lstrip("/")
        return {
            "liveness_probe": V1Probe(
                http_get=V1HTTPGetAction(
                    path=f"/{application_path}", port=self.HTTP_PORT_NAME
                ),
                initial_delay_seconds=60,
                timeout_seconds=5,
                period_seconds=60,
                success_threshold=1,
                failure_threshold=6,
            ),
            "readiness_probe": V1Probe(
                http_get=V1HTTPGetAction(path="/", port=self.HTTP_PORT_NAME),
                initial_delay_seconds=30,
                timeout_seconds=3,
                period_seconds=5,
                success_threshold=2,
                failure_threshold=6,
            ),
        }

    def prepare_container_resource_requirements(self) -> V1ResourceRequirements:
        return V1ResourceRequirements(
            requests={
                "cpu": self.DEFAULT_CPU_REQUEST,
                "memory": self.DEFAULT_MEMORY_REQUEST,
            }
        )

    def prepare_env_vars(self) -> List[V1EnvVar]:
        """Environment of the server container.

        Admin credentials are optional; the server starts without them when
        the secret is absent.
        """
        return [
            V1EnvVar(
                name="KUBERNETES_NAMESPACE",
                value_from=V1EnvVarSource(
                    field_ref=V1ObjectFieldSelector(field_path="metadata.namespace")
                ),
            ),
            V1EnvVar(name="KUBERNETES_LABELS", value=self.labels.as_str()),
            V1EnvVar(
                name=self.ADMIN_USER_ENV,
                value_from=V1EnvVarSource(
                    secret_key_ref=V1SecretKeySelector(
                        name=self.admin_secret_name,
                        key=self.ADMIN_USER_KEY,
                        optional=True,
                    )
                ),
            ),
            V1EnvVar(
                name=self.ADMIN_PASSWORD_ENV,
                value_from=V1EnvVarSource(
                    secret_key_ref=V1SecretKeySelector(
                        name=self.admin_secret_name,
                        key=self.ADMIN_PASSWORD_KEY,
                        optional=True,
                    )
                ),
            ),
        ]

    def prepare_volumes(self) -> List[V1Volume]:
        source = self.spec.config_source
        if source is None:
            return []
        return [
            V1Volume(
                name=self.CONFIG_VOLUME_NAME,
                config_map=V1ConfigMapVolumeSource(
                    name=source.name,
                    items=[V1KeyToPath(key=source.key, path=self.APPLICATION_CONFIG)],
                ),
            )
        ]

    def prepare_volume_mounts(self) -> List[V1VolumeMount]:
        if self.spec.config_source is None:
            return []
        return [
            V1VolumeMount(
                name=self.CONFIG_VOLUME_NAME,
                mount_path=self.CONFIG_MOUNT_PATH,
                sub_path=self.APPLICATION_CONFIG,
            )
        ]

    def prepare_service(self) -> V1Service:
        """Build service resource."""
        labels = self.labels.as_dict()
        service = V1Service(
            api_version="v1",
            kind="Service",
            metadata=V1ObjectMeta(
                name=self.service_name, namespace=self.namespace, labels=labels
            ),
            spec=V1ServiceSpec(
                type="LoadBalancer",
                selector=labels,
                ports=[
                    V1ServicePort(
                        name=self.HTTP_PORT_NAME,
                        protocol="TCP",
                        port=self.HTTP_PORT,
                        target_port=self.HTTP_PORT,
                    ),
                    V1ServicePort(
                        name=self.MANAGEMENT_PORT_NAME,
                        protocol="TCP",
                        port=self.MANAGEMENT_PORT,
                        target_port=self.MANAGEMENT_PORT,
                    ),
                ],
            ),
        )
        return self.mark_owned(service, self.owner)

    def prepare_config_map(self) -> Optional[V1ConfigMap]:
        """Build the configuration artifact, None when the cluster needs none.

        Raises:
            ConfigRenderError: the configuration document could not be rendered.
        """
        if not self.spec.renders_config:
            return None
        document = render_server_config(
            self.spec.data_sources, template_path=self.conf.config_template_path
        )
        config_map = V1ConfigMap(
            api_version="v1",
            kind="ConfigMap",
            metadata=V1ObjectMeta(
                name=self.config_map_name,
                namespace=self.namespace,
                labels=self.labels.as_dict(),
            ),
            data={self.CONFIG_MAP_KEY: document},
        )
        return self.mark_owned(config_map, self.owner)

    @property
    def deployment(self) -> V1Deployment:
        if self._deployment is None:
            self._deployment = self.prepare_deployment()
        return self._deployment

    @property
    def service(self) -> V1Service:
        if self._service is None:
            self._service = self.prepare_service()
        return self._service

    @property
    def api_client(self) -> ApiClient:
        if self._api_client is None:
            # Use the shared API client if available, otherwise create a new one
            if self.shared_api_client is not None:
                self._api_client = self.shared_api_client
            else:
                self._api_client = ApiClient()
        return self._api_client

    @property
    def apps_v1_api(self) -> AppsV1Api:
        if self._apps_v1_api is None:
            self._apps_v1_api = AppsV1Api(self.api_client)
        return self._apps_v1_api

    @property
    def core_v1_api(self) -> CoreV1Api:
        if self._core_v1_api is None:
            self._core_v1_api = CoreV1Api(self.api_client)
        return self._core_v1_api

    @property
    def custom_objects_api(self) -> CustomObjectsApi:
        if self._custom_objects_api is None:
            self._custom_objects_api = CustomObjectsApi(self.api_client)
        return self._custom_objects_api

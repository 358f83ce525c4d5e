from typing import Any, Dict, Optional
from wildfly.common.models.labels import Labels
from wildfly.utils.errors import already_exists_error
from kubernetes_asyncio.client import (
    ApiException,
    AppsV1Api,
    CoreV1Api,
    CustomObjectsApi,
    V1ConfigMap,
    V1Deployment,
    V1OwnerReference,
    V1PodList,
    V1Service,
)


class BaseResource:
    """Base resource model."""

    _cluster: str
    _namespace: str
    _labels: Labels
    _uid: Optional[str]

    def __init__(
        self, cluster: str, namespace: str, labels: Labels, uid: Optional[str] = None
    ):
        self._cluster = cluster
        self._namespace = namespace
        self._labels = labels
        self._uid = uid

    @property
    def cluster(self) -> str:
        return self._cluster

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def labels(self) -> Labels:
        return self._labels

    @property
    def uid(self) -> Optional[str]:
        return self._uid

    def owner_reference(
        self, api_version: str, kind: str
    ) -> Optional[V1OwnerReference]:
        """Controller reference pointing at this resource, None before it has a uid."""
        if self.uid is None:
            return None
        return V1OwnerReference(
            api_version=api_version,
            kind=kind,
            name=self.cluster,
            uid=self.uid,
            controller=True,
            block_owner_deletion=True,
        )

    def mark_owned(self, child: Any, owner: Optional[V1OwnerReference]) -> Any:
        """Attach the owner reference to a child so it is garbage collected
        together with its owner."""
        if owner is None:
            return child
        refs = list(child.metadata.owner_references or [])
        if not any(ref.uid == owner.uid for ref in refs):
            refs.append(owner)
        child.metadata.owner_references = refs
        return child

    async def fetch_deployment(
        self, apps_v1_api: AppsV1Api, name: str, namespace: str
    ) -> Optional[V1Deployment]:
        """Retrieve the latest state of a deployment"""
        try:
            return await apps_v1_api.read_namespaced_deployment(
                name=name, namespace=namespace
            )
        except ApiException as ex:
            if ex.status == 404:
                return None
            raise

    async def create_deployment(
        self, apps_v1_api: AppsV1Api, namespace: str, deployment: V1Deployment
    ) -> bool:
        """Create a deployment. Returns False when it already existed."""
        try:
            await apps_v1_api.create_namespaced_deployment(
                namespace=namespace, body=deployment
            )
        except ApiException as ex:
            if already_exists_error(ex):
                return False
            raise
        return True

    async def patch_deployment(
        self, apps_v1_api: AppsV1Api, name: str, namespace: str, deployment: Dict
    ):
        await apps_v1_api.patch_namespaced_deployment(
            name=name,
            namespace=namespace,
            body=deployment,
        )

    async def fetch_service(
        self, core_v1_api: CoreV1Api, name: str, namespace: str
    ) -> Optional[V1Service]:
        """Retrieve the latest state of a service"""
        try:
            return await core_v1_api.read_namespaced_service(
                name=name, namespace=namespace
            )
        except ApiException as ex:
            if ex.status == 404:
                return None
            raise

    async def create_service(
        self, core_v1_api: CoreV1Api, namespace: str, service: V1Service
    ) -> bool:
        try:
            await core_v1_api.create_namespaced_service(
                namespace=namespace, body=service
            )
        except ApiException as ex:
            if already_exists_error(ex):
                return False
            raise
        return True

    async def create_config_map(
        self, core_v1_api: CoreV1Api, namespace: str, config_map: V1ConfigMap
    ) -> bool:
        try:
            await core_v1_api.create_namespaced_config_map(
                namespace=namespace, body=config_map
            )
        except ApiException as ex:
            if already_exists_error(ex):
                return False
            raise
        return True

    async def list_pods(
        self, core_v1_api: CoreV1Api, namespace: str, label_selector: str = None
    ) -> V1PodList:
        """List pods in namespace, optionally filtered by a label selector string."""
        return await core_v1_api.list_namespaced_pod(
            namespace=namespace, label_selector=label_selector
        )

    async def get_custom_object(
        self,
        custom_objects_api: CustomObjectsApi,
        namespace: str,
        group: str,
        version: str,
        plural: str,
        name: str,
    ) -> Optional[Dict]:
        try:
            return await custom_objects_api.get_namespaced_custom_object(
                group=group,
                version=version,
                namespace=namespace,
                plural=plural,
                name=name,
            )
        except ApiException as ex:
            if ex.status == 404:
                return None
            raise

    async def patch_custom_object_status(
        self,
        custom_objects_api: CustomObjectsApi,
        namespace: str,
        group: str,
        version: str,
        plural: str,
        name: str,
        status: Dict,
    ):
        await custom_objects_api.patch_namespaced_custom_object_status(
            group=group,
            version=version,
            namespace=namespace,
            plural=plural,
            name=name,
            body={"status": status},
        )

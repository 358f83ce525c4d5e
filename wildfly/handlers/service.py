import kopf
from logging import Logger
from typing import Any, Dict
from kubernetes_asyncio.client import ApiException
from wildfly.resources import WildflyAppServer
from wildfly.resources.address import external_addresses, service_ingress_host
from wildfly.utils.errors import convert_api_exception
from wildfly.utils.helpers import first_owner_of_kind, owner_references

KIND = WildflyAppServer.KIND


async def reconcile_owned_service(
    service: Dict[str, Any], namespace: str, logger: Logger = None
) -> int:
    """Record the external address of a service on every cluster owning it.

    Clusters which already carry addresses are left untouched.

    Returns:
        Number of clusters whose status was patched.
    """
    host = service_ingress_host(service)
    if not host:
        return 0
    patched = 0
    for ref in owner_references(service):
        if ref.get("kind") != KIND:
            continue
        app = WildflyAppServer(ref["name"], namespace)
        if logger is not None:
            app.logger = logger
        try:
            if await app.commit_external_addresses(external_addresses(host)):
                patched += 1
        except ApiException as ex:
            convert_api_exception(
                ex, permanent=False, delay=WildflyAppServer.conf.retry_delay_seconds
            )
    return patched


def watched_service(body, **_) -> bool:
    """Services owned by a cluster, while addresses are learned from events."""
    return (
        WildflyAppServer.conf.watches_for_addresses
        and first_owner_of_kind(body, KIND) is not None
    )


async def on_owned_service_event(type, body, namespace, logger: Logger, **kwargs):
    """Pick up the external address once the load balancer got one."""
    if type == "DELETED":
        logger.debug("Owned service deleted, nothing to record.")
        return
    patched = await reconcile_owned_service(body, namespace, logger)
    if patched:
        logger.info(f"External address recorded on {patched} {KIND}(s).")


def register_service_watch(conf, registry=None) -> bool:
    """Watch services only when addresses are learned from their events.

    Returns:
        True if the service handler was registered.
    """
    if not conf.watches_for_addresses:
        return False
    kopf.on.event("v1", "services", when=watched_service, registry=registry)(
        on_owned_service_event
    )
    return True


register_service_watch(WildflyAppServer.conf)

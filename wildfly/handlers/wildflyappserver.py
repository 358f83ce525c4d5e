import kopf
import logging
from logging import Logger
from typing import Any, Dict, List, Optional
from marshmallow import ValidationError
from kubernetes_asyncio.client import ApiException
from wildfly.resources import AddressResolver, ResolverState, WildflyAppServer
from wildfly.types.models import WildflyAppServerSpec
from wildfly.types.schemas import WildflyAppServerSpecSchema
from wildfly.utils.errors import ConfigRenderError, convert_api_exception
from wildfly.utils.helpers import upsert_condition

KIND = WildflyAppServer.KIND


class TimerLogFilter(logging.Filter):
    def filter(self, record):
        """Timer logs are noisy so we filter them out."""
        return "Timer " not in record.getMessage()


kopf_logger = logging.getLogger("kopf.objects")
kopf_logger.addFilter(TimerLogFilter())


def load_app(
    name: str,
    namespace: str,
    spec: Dict[str, Any],
    labels: Optional[Dict[str, str]] = None,
    uid: Optional[str] = None,
    status: Optional[Dict[str, Any]] = None,
    logger: Logger = None,
) -> WildflyAppServer:
    """Build the resource model of a WildflyAppServer object.

    Raises:
        kopf.PermanentError: the resource does not validate, retrying is pointless.
    """
    try:
        spec_model: WildflyAppServerSpec = WildflyAppServerSpecSchema().load(
            dict(spec or {})
        )
    except ValidationError as ex:
        raise kopf.PermanentError(f"Invalid {KIND} spec: {ex.messages}") from ex
    return WildflyAppServer.from_spec(
        name,
        namespace,
        spec_model,
        labels=dict(labels or {}),
        uid=uid,
        status=dict(status or {}),
        logger=logger,
    )


def apply_changes(patch, changes: Dict[str, Dict[str, Any]]):
    """Copy the changes computed by a reconciliation onto kopf's patch."""
    for field, value in changes.items():
        getattr(patch, field).update(value)


def ready_conditions(status, generation: int, ready: bool, message: str) -> List[Dict]:
    conds = (status or {}).get("conditions", [])
    return upsert_condition(
        conds,
        {
            "type": "Ready",
            "status": "True" if ready else "False",
            "reason": "Reconciled" if ready else "Error",
            "message": message,
            "observedGeneration": generation,
        },
    )


def on_error(error, meta, status, patch, **_):
    """Record a failed reconciliation on the status."""
    gen = (meta or {}).get("generation", 0)
    patch.status["conditions"] = ready_conditions(
        status, gen, False, str(error) or "Reconcile failed; see events/logs"
    )


def on_success(meta, status, patch, **_):
    """Mark the cluster ready, writing the condition only when it changed."""
    gen = (meta or {}).get("generation", 0)
    conds = (status or {}).get("conditions", [])
    new_conds = ready_conditions(status, gen, True, "WildFly cluster reconciled")
    if new_conds != conds:
        patch.status["conditions"] = new_conds


async def reconcile(
    trigger_source: str,
    name: str,
    namespace: str,
    spec,
    meta,
    status,
    labels,
    patch,
    logger: Logger,
    uid: Optional[str] = None,
    **kwargs,
):
    """Converge the children of a WildflyAppServer and publish its status."""
    sensor = WildflyAppServer.sensor
    conf = WildflyAppServer.conf
    sensor_state = sensor.on_reconcile_start(
        name, namespace, (meta or {}).get("generation", 0), trigger_source
    )
    success, error = True, None
    try:
        app = load_app(name, namespace, spec, labels, uid, status, logger)
        changes = await app.synchronize()
    except ApiException as ex:
        success, error = False, ex
        logger.error(f"Failed to reconcile {KIND}: {ex}")
        on_error(ex, meta, status, patch)
        convert_api_exception(ex, permanent=False, delay=conf.retry_delay_seconds)
    except ConfigRenderError as ex:
        success, error = False, ex
        logger.error(f"Failed to render configuration of {KIND}: {ex}")
        on_error(ex, meta, status, patch)
        raise kopf.TemporaryError(str(ex), delay=conf.retry_delay_seconds) from ex
    except Exception as ex:
        success, error = False, ex
        on_error(ex, meta, status, patch)
        raise
    finally:
        sensor.on_reconcile_complete(name, namespace, sensor_state, success, error)

    if changes:
        logger.info(f"Recording changes: {changes}")
        apply_changes(patch, changes)
    on_success(meta, status, patch)


@kopf.on.resume(kind=KIND)
@kopf.on.create(kind=KIND)
@kopf.on.update(kind=KIND)
async def reconciliation(reason, **kwargs):
    """Reconcile WildflyAppServer resources."""
    await reconcile(getattr(reason, "value", str(reason)), **kwargs)


@kopf.timer(
    kind=KIND,
    initial_delay=WildflyAppServer.conf.reconcile_interval_seconds,
    interval=WildflyAppServer.conf.reconcile_interval_seconds,
    idle=WildflyAppServer.conf.reconcile_interval_seconds,
)
async def periodic_reconciliation(**kwargs):
    """Repair drift nobody was notified about, e.g. deleted children."""
    await reconcile("timer", **kwargs)


@kopf.on.delete(kind=KIND, optional=True)
async def on_delete(name, namespace, logger: Logger, **kwargs):
    """Children are garbage collected through their owner references."""
    logger.info(f"{KIND} `{name}` deleted in `{namespace}`.")


def polls_for_addresses(**_) -> bool:
    return WildflyAppServer.conf.polls_for_addresses


@kopf.daemon(kind=KIND, initial_delay=5.0, when=polls_for_addresses)
async def resolve_external_addresses(
    stopped,
    name,
    namespace,
    spec,
    status,
    labels,
    logger: Logger,
    uid: Optional[str] = None,
    **kwargs,
):
    """Wait for the cluster's service to be exposed and record its address.

    One resolver runs per cluster. An exhausted resolution is retried after
    the resync interval while the address is still unknown.
    """
    if (status or {}).get("externalAddresses"):
        logger.debug("External addresses already recorded.")
        return
    conf = WildflyAppServer.conf
    app = load_app(name, namespace, spec, labels, uid, status, logger)
    while not stopped:
        resolver = AddressResolver(
            app,
            max_attempts=conf.address_resolution_max_attempts,
            interval=conf.address_resolution_interval_seconds,
        )
        try:
            state = await resolver.run(stopped)
        except ApiException as ex:
            logger.error(f"Failed to resolve external address: {ex}")
            await stopped.wait(conf.retry_delay_seconds)
            continue
        if state is not ResolverState.EXHAUSTED:
            return
        await stopped.wait(conf.address_resync_interval_seconds)
        if stopped:
            break
        if await app.fetch_external_addresses():
            logger.info("External addresses recorded meanwhile.")
            return

import kopf
import logging
import platform
import wildfly.handlers.probes as probes
import wildfly.handlers.service as service
import wildfly.handlers.wildflyappserver as wildflyappserver
from wildfly.types.settings import Settings
from wildfly.resources import WildflyAppServer
from wildfly.sensors import init_metrics_server, SensorDelegate, PrometheusMonitor
from kubernetes_asyncio import config
from kubernetes_asyncio.client.api_client import ApiClient


# Configure Kopf settings
@kopf.on.startup()
async def setup(
    settings: kopf.OperatorSettings, logger: logging.Logger, **kwargs
):
    logger.info(f"Python version: {platform.python_version()}")
    logger.info(f"Platform: {platform.system()}/{platform.machine()}")
    logger.info(f"kopf version: {kopf.__version__}")

    # Load Kubernetes config - try in-cluster first (for production), then local kubeconfig (for dev)
    try:
        config.load_incluster_config()
        logger.info("Loaded in-cluster Kubernetes configuration")
    except config.ConfigException:
        logger.info("In-cluster config not found, trying local kubeconfig")
        try:
            await config.load_kube_config()
            logger.info("Loaded local Kubernetes configuration")
        except config.ConfigException as e:
            logger.error(f"Failed to load Kubernetes configuration: {e}")
            raise

    # Handlers and resources read the settings from the resource class
    conf = Settings()
    WildflyAppServer.conf = conf
    logger.info(
        f"External addresses resolved in `{conf.address_resolution_mode}` mode"
    )

    # Create a shared ApiClient for all resources to prevent connection leaks
    WildflyAppServer.shared_api_client = ApiClient()
    logger.info("Shared Kubernetes API client initialized")

    # Initialize sensor infrastructure
    sensor_delegate = SensorDelegate()
    WildflyAppServer.sensor = sensor_delegate

    if conf.metrics_enabled:
        sensor_delegate.add(PrometheusMonitor())
        try:
            init_metrics_server(conf.metrics_port)
        except Exception as e:
            logger.error(f"Failed to start metrics server: {e}")
            logger.warning("Continuing without metrics server")

    # Limit the number of concurrent workers to prevent flooding the API
    settings.batching.worker_limit = conf.worker_limit

    # Disable posting events to the Kubernetes API for logging > Warning
    settings.posting.enabled = True
    settings.posting.level = logging.WARNING


@kopf.on.cleanup()
async def cleanup(logger: logging.Logger, **kwargs):
    """Cleanup handler for operator shutdown."""
    logger.info("Shutting down operator...")

    if WildflyAppServer.shared_api_client is not None:
        await WildflyAppServer.shared_api_client.close()
        WildflyAppServer.shared_api_client = None
        logger.info("Shared API client closed")

    logger.info("Operator shutdown complete")


__all__ = [
    "probes",
    "service",
    "wildflyappserver",
]

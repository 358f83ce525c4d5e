import os
from typing import Any

_TRUE, _FALSE = {"True", "true", "yes", "1"}, {"False", "false", "no", "0"}


def _getenv(name: str, *default: Any) -> Any:
    try:
        v = os.environ[name]
        if v in _TRUE:
            return True
        elif v in _FALSE:
            return False
        else:
            return v
    except KeyError:
        pass
    if default:
        return default[0]
    raise KeyError(name)


# ------------------------------------------------
# ---- Defaults and environment variables ----
# ------------------------------------------------

#: Poll the cluster's service until an external address shows up.
ADDRESS_RESOLUTION_POLL = "poll"

#: Learn the external address from service change events.
ADDRESS_RESOLUTION_WATCH = "watch"

#: How external addresses are discovered: `poll` or `watch`
ADDRESS_RESOLUTION_MODE = str(
    _getenv("ADDRESS_RESOLUTION_MODE", ADDRESS_RESOLUTION_POLL)
).lower()

#: Number of times the service is inspected before giving up on an address
ADDRESS_RESOLUTION_MAX_ATTEMPTS = int(_getenv("ADDRESS_RESOLUTION_MAX_ATTEMPTS", 30))

#: Seconds to wait between two inspections of the service
ADDRESS_RESOLUTION_INTERVAL_SECONDS = float(
    _getenv("ADDRESS_RESOLUTION_INTERVAL_SECONDS", 10.0)
)

#: Seconds to wait before starting a new resolution after one was exhausted
ADDRESS_RESYNC_INTERVAL_SECONDS = float(
    _getenv("ADDRESS_RESYNC_INTERVAL_SECONDS", 300.0)
)

#: Compare member lists including their order
MEMBER_LIST_ORDERED = bool(_getenv("MEMBER_LIST_ORDERED", True))

#: Seconds between periodic full reconciliations of every cluster
RECONCILE_INTERVAL_SECONDS = float(_getenv("RECONCILE_INTERVAL_SECONDS", 60.0))

#: Seconds before kopf retries a reconciliation that failed temporarily
RETRY_DELAY_SECONDS = float(_getenv("RETRY_DELAY_SECONDS", 30.0))

#: Datasource configuration template; the bundled template is used when unset
CONFIG_TEMPLATE_PATH = _getenv("CONFIG_TEMPLATE_PATH", None)

#: Maximum number of concurrent kopf workers
WORKER_LIMIT = int(_getenv("WORKER_LIMIT", 2))

#: Expose Prometheus metrics
METRICS_ENABLED = bool(_getenv("METRICS_ENABLED", True))

#: Port of the Prometheus metrics endpoint
METRICS_PORT = int(_getenv("METRICS_PORT", 8000))


class Settings:
    """Operator settings"""

    address_resolution_mode: str = ADDRESS_RESOLUTION_MODE
    address_resolution_max_attempts: int = ADDRESS_RESOLUTION_MAX_ATTEMPTS
    address_resolution_interval_seconds: float = ADDRESS_RESOLUTION_INTERVAL_SECONDS
    address_resync_interval_seconds: float = ADDRESS_RESYNC_INTERVAL_SECONDS
    member_list_ordered: bool = MEMBER_LIST_ORDERED
    reconcile_interval_seconds: float = RECONCILE_INTERVAL_SECONDS
    retry_delay_seconds: float = RETRY_DELAY_SECONDS
    config_template_path: str = CONFIG_TEMPLATE_PATH
    worker_limit: int = WORKER_LIMIT
    metrics_enabled: bool = METRICS_ENABLED
    metrics_port: int = METRICS_PORT

    def __init__(
        self,
        *args,
        address_resolution_mode: str = None,
        address_resolution_max_attempts: int = None,
        address_resolution_interval_seconds: float = None,
        address_resync_interval_seconds: float = None,
        member_list_ordered: bool = None,
        reconcile_interval_seconds: float = None,
        retry_delay_seconds: float = None,
        config_template_path: str = None,
        worker_limit: int = None,
        metrics_enabled: bool = None,
        metrics_port: int = None,
        **kwargs,
    ):
        if address_resolution_mode is not None:
            self.address_resolution_mode = address_resolution_mode.lower()

        if address_resolution_max_attempts is not None:
            self.address_resolution_max_attempts = address_resolution_max_attempts

        if address_resolution_interval_seconds is not None:
            self.address_resolution_interval_seconds = (
                address_resolution_interval_seconds
            )

        if address_resync_interval_seconds is not None:
            self.address_resync_interval_seconds = address_resync_interval_seconds

        if member_list_ordered is not None:
            self.member_list_ordered = member_list_ordered

        if reconcile_interval_seconds is not None:
            self.reconcile_interval_seconds = reconcile_interval_seconds

        if retry_delay_seconds is not None:
            self.retry_delay_seconds = retry_delay_seconds

        if config_template_path is not None:
            self.config_template_path = config_template_path

        if worker_limit is not None:
            self.worker_limit = worker_limit

        if metrics_enabled is not None:
            self.metrics_enabled = metrics_enabled

        if metrics_port is not None:
            self.metrics_port = metrics_port

        if self.address_resolution_mode not in (
            ADDRESS_RESOLUTION_POLL,
            ADDRESS_RESOLUTION_WATCH,
        ):
            raise ValueError(
                f"Unsupported address resolution mode `{self.address_resolution_mode}`."
            )

    @property
    def polls_for_addresses(self) -> bool:
        return self.address_resolution_mode == ADDRESS_RESOLUTION_POLL

    @property
    def watches_for_addresses(self) -> bool:
        return self.address_resolution_mode == ADDRESS_RESOLUTION_WATCH

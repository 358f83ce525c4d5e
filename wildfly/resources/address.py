"""External address resolution.

A LoadBalancer service gets its external address assigned by the cloud
provider some time after it was created. The resolver inspects the service
until the address shows up, then records it on the cluster status once.
"""

import logging
from enum import Enum
from typing import Any, Dict, Optional

APPLICATION_PORT = 8080
MANAGEMENT_PORT = 9990

logger = logging.getLogger(__name__)


class ResolverState(Enum):
    WAITING = "Waiting"
    FOUND = "Found"
    EXHAUSTED = "Exhausted"
    CANCELLED = "Cancelled"


def _ingress_entries(service: Any):
    if service is None:
        return []
    if isinstance(service, dict):
        status = service.get("status") or {}
        load_balancer = status.get("loadBalancer") or {}
        return [
            (entry.get("hostname"), entry.get("ip"))
            for entry in load_balancer.get("ingress") or []
        ]
    status = getattr(service, "status", None)
    load_balancer = getattr(status, "load_balancer", None)
    return [
        (entry.hostname, entry.ip)
        for entry in getattr(load_balancer, "ingress", None) or []
    ]


def service_ingress_host(service: Any) -> Optional[str]:
    """Host of the first load balancer ingress entry carrying an address.

    Accepts a typed V1Service as well as a raw object body. The hostname
    wins over the IP when an entry carries both.
    """
    for hostname, ip in _ingress_entries(service):
        if hostname:
            return hostname
        if ip:
            return ip
    return None


def external_addresses(host: str) -> Dict[str, str]:
    return {
        "application": f"{host}:{APPLICATION_PORT}",
        "management": f"{host}:{MANAGEMENT_PORT}",
    }


class AddressResolver:
    """Bounded polling of a cluster's service for its external address.

    The resolver starts in WAITING. Every `step()` inspects the live service
    once; the first address found is committed to the cluster status and
    moves the resolver to FOUND. After `max_attempts` inspections without an
    address it moves to EXHAUSTED. `run()` drives the steps and moves to
    CANCELLED as soon as the stop token is set. Terminal states are final.
    """

    def __init__(self, app, max_attempts: int = 30, interval: float = 10.0):
        self.app = app
        self.max_attempts = max_attempts
        self.interval = interval
        self.state = ResolverState.WAITING
        self.attempts = 0
        self.addresses: Optional[Dict[str, str]] = None

    @property
    def done(self) -> bool:
        return self.state is not ResolverState.WAITING

    @property
    def logger(self) -> logging.Logger:
        return getattr(self.app, "logger", None) or logger

    def cancel(self) -> ResolverState:
        if not self.done:
            self.state = ResolverState.CANCELLED
            self.logger.info(
                f"External address resolution cancelled after {self.attempts} attempt(s)."
            )
        return self.state

    async def step(self) -> ResolverState:
        """Inspect the service once."""
        if self.done:
            return self.state
        self.attempts += 1
        host = service_ingress_host(await self.app.fetch_live_service())
        if host:
            self.addresses = external_addresses(host)
            await self.app.commit_external_addresses(self.addresses)
            self.state = ResolverState.FOUND
            self.logger.info(f"External address {host} resolved.")
        elif self.attempts >= self.max_attempts:
            self.state = ResolverState.EXHAUSTED
            self.logger.warning(
                f"No external address assigned to service `{self.app.service_name}` "
                f"after {self.attempts} attempts."
            )
        return self.state

    async def run(self, stopped) -> ResolverState:
        """Drive the resolver until it reaches a terminal state.

        Args:
            stopped: kopf daemon stop token; truthy once the daemon must stop.
        """
        while not self.done:
            if stopped:
                self.cancel()
                break
            await self.step()
            if not self.done:
                await stopped.wait(self.interval)
        self.app.sensor.on_address_resolution_complete(
            self.app.cluster, self.app.namespace, self.state.value, self.attempts
        )
        return self.state

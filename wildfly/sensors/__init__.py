"""Operator sensor framework.

Hook-based instrumentation of reconciler events. The SensorDelegate fans
every event out to the registered backends, e.g. PrometheusMonitor.

Usage:
    from wildfly.sensors import SensorDelegate, PrometheusMonitor

    delegate = SensorDelegate()
    delegate.add(PrometheusMonitor())
"""

from wildfly.sensors.base import OperatorSensor
from wildfly.sensors.delegate import SensorDelegate
from wildfly.sensors.prometheus import PrometheusMonitor
from wildfly.sensors.server import init_metrics_server

__all__ = [
    "OperatorSensor",
    "SensorDelegate",
    "PrometheusMonitor",
    "init_metrics_server",
]

"""Prometheus monitoring backend for the WildFly operator.

PrometheusMonitor turns sensor events into Prometheus metrics:

1. Reconciliation health - duration, throughput, errors
2. Kubernetes resource sync - operation counts, latency, drift detection
3. Status publication - status writes, external address resolution outcomes

All metrics carry the cluster name and namespace as labels.
"""

from typing import Any, Dict, List, Optional
import time
import logging

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram

from wildfly.sensors.base import OperatorSensor

logger = logging.getLogger(__name__)


class PrometheusMonitor(OperatorSensor):
    """Prometheus metrics monitor for the WildFly operator.

    Metrics are grouped by prefix:
    - wildflyop_reconcile_* - Reconciliation loop metrics
    - wildflyop_resource_* - Kubernetes resource sync metrics
    - wildflyop_status_* / wildflyop_address_* - Status publication metrics
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        super().__init__()

        # =============================================================================
        # Reconciliation Loop Metrics
        # =============================================================================

        self.reconcile_duration = Histogram(
            "wildflyop_reconcile_duration_seconds",
            "Time spent in reconciliation loop",
            labelnames=["cluster_name", "namespace", "trigger_source", "result"],
            buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
            registry=registry,
        )

        self.reconcile_total = Counter(
            "wildflyop_reconcile_total",
            "Total number of reconciliation attempts",
            labelnames=["cluster_name", "namespace", "trigger_source", "result"],
            registry=registry,
        )

        self.reconcile_errors = Counter(
            "wildflyop_reconcile_errors_total",
            "Total number of reconciliation errors",
            labelnames=["cluster_name", "namespace", "error_type"],
            registry=registry,
        )

        # =============================================================================
        # Kubernetes Resource Sync Metrics
        # =============================================================================

        self.resource_sync_duration = Histogram(
            "wildflyop_resource_sync_duration_seconds",
            "Time spent writing Kubernetes resources",
            labelnames=["cluster_name", "namespace", "resource_type", "operation", "result"],
            buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=registry,
        )

        self.resource_sync_total = Counter(
            "wildflyop_resource_sync_total",
            "Total number of resource write operations",
            labelnames=["cluster_name", "namespace", "resource_type", "operation", "result"],
            registry=registry,
        )

        self.resource_drift_detected = Counter(
            "wildflyop_resource_drift_detected_total",
            "Total number of resource drift detections",
            labelnames=["cluster_name", "namespace", "resource_type", "drift_field"],
            registry=registry,
        )

        # =============================================================================
        # Status Metrics
        # =============================================================================

        self.status_updates = Counter(
            "wildflyop_status_updates_total",
            "Total number of status updates",
            labelnames=["cluster_name", "namespace", "update_field"],
            registry=registry,
        )

        self.address_resolution_total = Counter(
            "wildflyop_address_resolution_total",
            "Total number of finished external address resolutions",
            labelnames=["cluster_name", "namespace", "outcome"],
            registry=registry,
        )

        self.address_resolution_attempts = Histogram(
            "wildflyop_address_resolution_attempts",
            "Service inspections needed per external address resolution",
            labelnames=["cluster_name", "namespace", "outcome"],
            buckets=[1, 2, 5, 10, 20, 30, 60],
            registry=registry,
        )

        logger.info("PrometheusMonitor initialized with all metrics")

    # =============================================================================
    # Reconciliation Lifecycle Hooks
    # =============================================================================

    def on_reconcile_start(
        self,
        cluster_name: str,
        namespace: str,
        generation: int,
        trigger_source: str,
    ) -> Optional[Dict[str, Any]]:
        """Record reconciliation start time."""
        return {
            "start_time": time.time(),
            "trigger_source": trigger_source,
        }

    def on_reconcile_complete(
        self,
        cluster_name: str,
        namespace: str,
        state: Optional[Dict[str, Any]],
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        """Record reconciliation duration and result."""
        if not state:
            return
        duration = time.time() - state["start_time"]
        result = "success" if success else "failure"
        labels = dict(
            cluster_name=cluster_name,
            namespace=namespace,
            trigger_source=state["trigger_source"],
            result=result,
        )
        self.reconcile_duration.labels(**labels).observe(duration)
        self.reconcile_total.labels(**labels).inc()
        if error:
            self.reconcile_errors.labels(
                cluster_name=cluster_name,
                namespace=namespace,
                error_type=error.__class__.__name__,
            ).inc()

    # =============================================================================
    # Resource Operation Hooks
    # =============================================================================

    def on_resource_sync_start(
        self,
        cluster_name: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
    ) -> Optional[Dict[str, Any]]:
        return {"start_time": time.time()}

    def on_resource_sync_complete(
        self,
        cluster_name: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
        state: Optional[Dict[str, Any]],
        operation: str,
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        if not state:
            return
        labels = dict(
            cluster_name=cluster_name,
            namespace=namespace,
            resource_type=resource_type,
            operation=operation,
            result="success" if success else "failure",
        )
        self.resource_sync_duration.labels(**labels).observe(
            time.time() - state["start_time"]
        )
        self.resource_sync_total.labels(**labels).inc()

    def on_resource_drift_detected(
        self,
        cluster_name: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
        drift_fields: List[str],
    ) -> None:
        for field in drift_fields:
            self.resource_drift_detected.labels(
                cluster_name=cluster_name,
                namespace=namespace,
                resource_type=resource_type,
                drift_field=field,
            ).inc()

    # =============================================================================
    # Status Hooks
    # =============================================================================

    def on_status_update(
        self,
        cluster_name: str,
        namespace: str,
        update_fields: List[str],
    ) -> None:
        for field in update_fields:
            self.status_updates.labels(
                cluster_name=cluster_name,
                namespace=namespace,
                update_field=field,
            ).inc()

    def on_address_resolution_complete(
        self,
        cluster_name: str,
        namespace: str,
        outcome: str,
        attempts: int,
    ) -> None:
        labels = dict(cluster_name=cluster_name, namespace=namespace, outcome=outcome)
        self.address_resolution_total.labels(**labels).inc()
        self.address_resolution_attempts.labels(**labels).observe(attempts)

"""Sensor delegation for fan-out pattern.

SensorDelegate routes sensor events to every registered monitoring backend.
Each backend receives the same events and keeps its own state; a failing
backend is logged and never interrupts reconciliation.
"""

from typing import Any, Dict, List, Optional, Set
import logging

from wildfly.sensors.base import OperatorSensor

logger = logging.getLogger(__name__)


class SensorDelegate(OperatorSensor):
    """Delegate sensor that fans out events to multiple backends.

    Example:
        delegate = SensorDelegate()
        delegate.add(PrometheusMonitor())

        state = delegate.on_reconcile_start("my-cluster", "default", 5, "timer")
        delegate.on_reconcile_complete("my-cluster", "default", state, True)
    """

    def __init__(self) -> None:
        self._sensors: Set[OperatorSensor] = set()

    def add(self, sensor: OperatorSensor) -> None:
        logger.info(f"Adding sensor: {sensor.__class__.__name__}")
        self._sensors.add(sensor)

    def remove(self, sensor: OperatorSensor) -> None:
        logger.info(f"Removing sensor: {sensor.__class__.__name__}")
        self._sensors.discard(sensor)

    def clear(self) -> None:
        self._sensors.clear()

    def __len__(self) -> int:
        return len(self._sensors)

    def _fan_out(self, hook: str, *args: Any) -> Dict[OperatorSensor, Any]:
        results = {}
        for sensor in self._sensors:
            try:
                result = getattr(sensor, hook)(*args)
                if result is not None:
                    results[sensor] = result
            except Exception as e:
                logger.error(
                    f"Error in {sensor.__class__.__name__}.{hook}: {e}",
                    exc_info=True,
                )
        return results

    def _fan_out_with_state(
        self,
        hook: str,
        state: Optional[Dict[OperatorSensor, Any]],
        *args: Any,
        **kwargs: Any,
    ) -> None:
        for sensor in self._sensors:
            try:
                sensor_state = state.get(sensor) if state else None
                getattr(sensor, hook)(*args, sensor_state, **kwargs)
            except Exception as e:
                logger.error(
                    f"Error in {sensor.__class__.__name__}.{hook}: {e}",
                    exc_info=True,
                )

    # =============================================================================
    # Reconciliation Lifecycle Hooks
    # =============================================================================

    def on_reconcile_start(
        self,
        cluster_name: str,
        namespace: str,
        generation: int,
        trigger_source: str,
    ) -> Optional[Dict[OperatorSensor, Any]]:
        """Delegate reconcile_start to all sensors.

        Returns:
            Dict mapping each sensor to its returned state, or None if no sensors
        """
        states = self._fan_out(
            "on_reconcile_start", cluster_name, namespace, generation, trigger_source
        )
        return states or None

    def on_reconcile_complete(
        self,
        cluster_name: str,
        namespace: str,
        state: Optional[Dict[OperatorSensor, Any]],
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        self._fan_out_with_state(
            "on_reconcile_complete",
            state,
            cluster_name,
            namespace,
            success=success,
            error=error,
        )

    # =============================================================================
    # Resource Operation Hooks
    # =============================================================================

    def on_resource_sync_start(
        self,
        cluster_name: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
    ) -> Optional[Dict[OperatorSensor, Any]]:
        states = self._fan_out(
            "on_resource_sync_start",
            cluster_name,
            resource_name,
            namespace,
            resource_type,
        )
        return states or None

    def on_resource_sync_complete(
        self,
        cluster_name: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
        state: Optional[Dict[OperatorSensor, Any]],
        operation: str,
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        self._fan_out_with_state(
            "on_resource_sync_complete",
            state,
            cluster_name,
            resource_name,
            namespace,
            resource_type,
            operation=operation,
            success=success,
            error=error,
        )

    def on_resource_drift_detected(
        self,
        cluster_name: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
        drift_fields: List[str],
    ) -> None:
        self._fan_out(
            "on_resource_drift_detected",
            cluster_name,
            resource_name,
            namespace,
            resource_type,
            drift_fields,
        )

    # =============================================================================
    # Status Hooks
    # =============================================================================

    def on_status_update(
        self, cluster_name: str, namespace: str, update_fields: List[str]
    ) -> None:
        self._fan_out("on_status_update", cluster_name, namespace, update_fields)

    def on_address_resolution_complete(
        self, cluster_name: str, namespace: str, outcome: str, attempts: int
    ) -> None:
        self._fan_out(
            "on_address_resolution_complete",
            cluster_name,
            namespace,
            outcome,
            attempts,
        )

    def asdict(self) -> Dict[str, Any]:
        """Return aggregated state from all sensors."""
        return {
            sensor.__class__.__name__: sensor.asdict() for sensor in self._sensors
        }

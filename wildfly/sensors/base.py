"""Base sensor classes for operator monitoring.

This module defines the OperatorSensor class that provides lifecycle hooks
for the events of the WildflyAppServer reconciler. All hooks are no-ops by
default so subclasses override only the events they care about.

- Hooks come in pairs: on_X_start() and on_X_complete()
- Start hooks return an optional state dict for tracking multi-phase operations
- Complete hooks receive the state dict from their corresponding start hook
"""

from typing import Any, Dict, List, Optional


class OperatorSensor:
    """Base sensor class for WildflyAppServer operator monitoring.

    Hooks cover three areas:
    1. Reconciliation lifecycle (one pass over a cluster)
    2. Child resource operations (create/patch of Deployment, Service, ConfigMap)
    3. Status publication (member list, external address resolution)
    """

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
        """Called when a reconciliation pass begins.

        Args:
            cluster_name: WildflyAppServer resource name
            namespace: Kubernetes namespace
            generation: Resource generation number
            trigger_source: What triggered reconciliation (create, update, resume, timer)

        Returns:
            Optional state dict passed to on_reconcile_complete
        """
        pass

    def on_reconcile_complete(
        self,
        cluster_name: str,
        namespace: str,
        state: Optional[Dict[str, Any]],
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        """Called when a reconciliation pass completes."""
        pass

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
        """Called before a child resource is written."""
        pass

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
        """Called after a child resource write finished.

        Args:
            operation: `create` or `patch`
        """
        pass

    def on_resource_drift_detected(
        self,
        cluster_name: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
        drift_fields: List[str],
    ) -> None:
        """Called when a live child resource differs from the desired one."""
        pass

    # =============================================================================
    # Status Hooks
    # =============================================================================

    def on_status_update(
        self,
        cluster_name: str,
        namespace: str,
        update_fields: List[str],
    ) -> None:
        """Called when status fields of a cluster are written."""
        pass

    def on_address_resolution_complete(
        self,
        cluster_name: str,
        namespace: str,
        outcome: str,
        attempts: int,
    ) -> None:
        """Called when an external address resolution stops.

        Args:
            outcome: Final resolver state (Found, Exhausted, Cancelled)
            attempts: Number of times the service was inspected
        """
        pass

    def asdict(self) -> Dict[str, Any]:
        return {}

from typing import Dict


class Labels:
    """Label set selecting every child resource of a WildflyAppServer."""

    APP_NAME_LABEL = "appName"

    _labels: Dict[str, str]

    def __init__(self, labels: Dict[str, str] = None) -> None:
        self._labels = dict(labels) if labels else dict()

    def update(self, labels: Dict[str, str]) -> "Labels":
        self._labels.update(labels.copy())
        return self

    def as_dict(self) -> Dict[str, str]:
        """Return labels as dictionary."""
        return self._labels.copy()

    def as_str(self) -> str:
        """Return labels as a label selector string.

        Keys are sorted so the same label set always renders the same selector.
        """
        return ",".join(f"{k}={self._labels[k]}" for k in sorted(self._labels))

    def include(self, label: str, value: str) -> "Labels":
        self.update({label: value})
        return self

    def include_app_name(self, name: str) -> "Labels":
        return self.include(self.APP_NAME_LABEL, name)

    @classmethod
    def generate_default_labels(
        cls, cluster_name: str, resource_labels: Dict[str, str] = None
    ) -> "Labels":
        """Labels of a cluster: `appName` plus the labels of the resource itself.

        The resource's own labels are applied last, as the orchestrator's
        label merge would.
        """
        return Labels().include_app_name(cluster_name).update(resource_labels or {})

class WildflyAppServerResources:
    """Encapsulates the naming scheme used for the resources which the operator manages
    for a WildflyAppServer cluster.

    Every child is named after the owning cluster so that existence checks are
    plain name lookups within the cluster's namespace.
    """

    @classmethod
    def deployment_name(self, cluster_name: str):
        return cluster_name

    @classmethod
    def service_name(self, cluster_name: str):
        return cluster_name

    @classmethod
    def config_map_name(self, cluster_name: str):
        return cluster_name

    @classmethod
    def admin_secret_name(self, cluster_name: str):
        """Returns the name of the secret holding admin credentials."""
        return cluster_name

    @classmethod
    def container_name(self, cluster_name: str):
        return cluster_name

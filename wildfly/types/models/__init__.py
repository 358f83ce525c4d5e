from .wildflyappserver_spec import WildflyAppServerSpec, DataSource, ConfigSource
from .wildflyappserver_resources import WildflyAppServerResources

__all__ = [
    "WildflyAppServerSpec",
    "DataSource",
    "ConfigSource",
    "WildflyAppServerResources",
]

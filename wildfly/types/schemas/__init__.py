from .wildflyappserver_spec import (
    WildflyAppServerSpecSchema,
    DataSourceSchema,
    ConfigSourceSchema,
)

__all__ = [
    "WildflyAppServerSpecSchema",
    "DataSourceSchema",
    "ConfigSourceSchema",
]

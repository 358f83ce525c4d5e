from wildfly.handlers import probes, service, wildflyappserver

__all__ = [
    "probes",
    "service",
    "wildflyappserver",
]

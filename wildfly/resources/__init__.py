from .wildflyappserver import WildflyAppServer
from .address import AddressResolver, ResolverState

__all__ = [
    "WildflyAppServer",
    "AddressResolver",
    "ResolverState",
]

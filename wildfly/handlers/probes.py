import datetime
import kopf
from wildfly.resources import WildflyAppServer


# Liveness probe
@kopf.on.probe(id="now")
def get_current_timestamp(**kwargs):
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


@kopf.on.probe(id="addressResolution")
def get_address_resolution_mode(**kwargs):
    return WildflyAppServer.conf.address_resolution_mode

"""Port inventory of terminal devices.

Ports are filled in by device discovery and read by the drivers. The only
per-port metadata the drivers depend on are the annotations below.
"""

from enum import Enum
import logging
import threading

from .errors import NotFoundError


logger = logging.getLogger(__name__)

PORT_TYPE = "port-type"
OC_NAME = "oc-name"
OC_TYPE = "oc-type"
OC_OPTICAL_CHANNEL = "oc-optical-channel"
OC_TRANSCEIVER = "oc-transceiver"


class PortType(Enum):
    LINE = "line"
    CLIENT = "client"


class Port:
    """A device port.

    Args:
        number (int): Port number.
        annotations (dict): Annotations set by discovery.
        enabled (bool): Administrative state.
    """

    def __init__(self, number, annotations=None, enabled=True):
        self.number = number
        self.annotations = dict(annotations or {})
        self.enabled = enabled

    @property
    def port_type(self):
        v = self.annotations.get(PORT_TYPE)
        if v is None:
            return None
        try:
            return PortType(v)
        except ValueError:
            logger.warning(f"port {self.number}: unknown {PORT_TYPE} {v!r}")
            return None

    @property
    def optical_channel(self):
        return self.annotations.get(OC_OPTICAL_CHANNEL)

    @property
    def transceiver(self):
        return self.annotations.get(OC_TRANSCEIVER)

    def __eq__(self, other):
        if not isinstance(other, Port):
            return NotImplemented
        return (
            self.number == other.number
            and self.annotations == other.annotations
            and self.enabled == other.enabled
        )

    def __repr__(self):
        return f"Port({self.number!r}, {self.annotations!r})"


class DeviceInventory:
    """Ports of every known device, keyed by device id."""

    def __init__(self):
        self._ports = {}
        self._lock = threading.Lock()

    def set_ports(self, device_id, ports):
        with self._lock:
            self._ports[device_id] = {p.number: p for p in ports}
        logger.debug(f"{device_id}: {len(ports)} ports")

    def get_ports(self, device_id):
        with self._lock:
            return list(self._ports.get(device_id, {}).values())

    def get_port(self, device_id, number):
        with self._lock:
            port = self._ports.get(device_id, {}).get(number)
        if port is None:
            raise NotFoundError(f"port {number} not found on {device_id}")
        return port

    def line_ports(self, device_id):
        return {
            p.number for p in self.get_ports(device_id) if p.port_type == PortType.LINE
        }

    def remove_device(self, device_id):
        with self._lock:
            self._ports.pop(device_id, None)

import logging

from odtn.lib.device import (
    OC_NAME,
    OC_OPTICAL_CHANNEL,
    OC_TRANSCEIVER,
    OC_TYPE,
    PORT_TYPE,
    Port,
    PortType,
)
from odtn.lib.errors import Error, ProtocolError
from . import port as fujitsu_port
from .util import *

logger = logging.getLogger(__name__)

DEFAULT_VENDOR = "NOVENDOR"
DEFAULT_SERIAL_NUMBER = "0xCAFEBEEF"
DEFAULT_HW_VERSION = "0.2.1"
DEFAULT_SW_VERSION = "0.2.1"
DEFAULT_CHASSIS_ID = "128"

DEVICE_STATE_PATH = "data.components.component.state"


class DeviceDescription:
    def __init__(
        self,
        device_id,
        vendor,
        hw_version,
        sw_version,
        serial_number,
        chassis_id,
        available=True,
    ):
        self.device_id = device_id
        self.type = "TERMINAL_DEVICE"
        self.vendor = vendor
        self.hw_version = hw_version
        self.sw_version = sw_version
        self.serial_number = serial_number
        self.chassis_id = chassis_id
        self.available = available

    def to_dict(self):
        return {
            "device-id": self.device_id,
            "type": self.type,
            "vendor": self.vendor,
            "hw-version": self.hw_version,
            "sw-version": self.sw_version,
            "serial-number": self.serial_number,
            "chassis-id": self.chassis_id,
            "available": self.available,
        }

    def __repr__(self):
        return f"DeviceDescription({self.to_dict()!r})"


def device_details_filter():
    components = new_root("components", OC_PLATFORM_NS)
    component = sub_ele_ns(components, "component", OC_PLATFORM_NS)
    sub_ele_ns(component, "state", OC_PLATFORM_NS)
    return components


def components_filter():
    return new_root("components", OC_PLATFORM_NS)


def _local_name(value):
    # identityrefs are reported with or without a module prefix
    return value.split(":")[-1] if value else value


class TerminalDeviceDiscovery:
    """Device and port discovery of a Fujitsu T600.

    Args:
        device_id (str): Device identifier.
        controller (NetconfController): Provides the NETCONF session of the device.
        inventory (DeviceInventory): Receives the discovered ports.
    """

    def __init__(self, device_id, controller, inventory):
        self.device_id = device_id
        self.controller = controller
        self.inventory = inventory

    def discover_device_details(self):
        """Get the vendor, versions, serial number and chassis id of the device.

        Leaves missing from the reply fall back to placeholder values.

        Returns:
            DeviceDescription: Device details.

        Raises:
            ProtocolError: The device could not be queried.
        """
        logger.debug(
            f"discovering device details of {self.device_id}"
        )
        try:
            session = self.controller.get_session(self.device_id)
            reply = session.rpc(filtered_get(device_details_filter()))
            data = parse_reply(reply)

            def state(leaf, default):
                return xml_get(data, f"{DEVICE_STATE_PATH}.{leaf}", default)

            vendor = state("mfg-name", DEFAULT_VENDOR)
            serial_number = state("serial-no", DEFAULT_SERIAL_NUMBER)
            sw_version = state("software-version", DEFAULT_SW_VERSION)
            hw_version = state("hardware-version", DEFAULT_HW_VERSION)
            chassis_id = int(state("id", DEFAULT_CHASSIS_ID), 10)
        except (Error, ValueError) as e:
            logger.error(f"failed to retrieve device details of {self.device_id}: {e}")
            raise ProtocolError(f"failed to retrieve version info: {e}") from e

        logger.info("Device retrieved details")
        logger.info(f"VENDOR    {vendor}")
        logger.info(f"HWVERSION {hw_version}")
        logger.info(f"SWVERSION {sw_version}")
        logger.info(f"SERIAL    {serial_number}")
        logger.info(f"CHASSISID {chassis_id}")

        return DeviceDescription(
            self.device_id, vendor, hw_version, sw_version, serial_number, chassis_id
        )

    def discover_port_details(self):
        """Get the active ports of the device and store them in the inventory.

        Returns:
            list of Port: Discovered ports. Empty if the device could not be
                queried.
        """
        try:
            session = self.controller.get_session(self.device_id)
            reply = session.rpc(filtered_get(components_filter()))
            logger.debug(f"REPLY {reply}")
            data = parse_reply(
                reply, force_list=("component", "subcomponent", "property")
            )
        except Error as e:
            logger.error(f"failed to discover ports of {self.device_id}: {e}")
            return []

        components = xml_subtree(data, "data.components", {})
        if not isinstance(components, dict):
            components = {}
        ports = self.parse_ports(components.get("component", []))
        self.inventory.set_ports(self.device_id, ports)
        return ports

    def parse_ports(self, components):
        types = {}
        for component in components:
            name = xml_get(component, "name")
            if name is not None:
                types[name] = _local_name(xml_get(component, "state.type"))

        ports = []
        for component in components:
            if xml_get(component, "name") is None:
                continue
            if xml_get(component, "state.type") != OC_PLATFORM_TYPES_PORT:
                continue
            if xml_get(component, "state.oper-status") != OC_PLATFORM_ACTIVE:
                continue
            try:
                port = self.parse_port_component(component, types)
            except Error as e:
                logger.warning(f"skipping component {xml_get(component, 'name')}: {e}")
                continue
            if port is not None:
                ports.append(port)
        return ports

    def parse_port_component(self, component, types):
        """Build a port out of a PORT component.

        Args:
            component (dict): Parsed component.
            types (dict): Component type per component name, used to resolve
                the type of subcomponents.

        Returns:
            Port: The port, or None if it is neither a line nor a client port.

        Raises:
            FormatError: The component name does not map to a port number.
        """
        name = xml_get(component, "name")
        type_ = xml_get(component, "state.type")
        logger.info(f"Parsing Component {name} type {type_}")

        annotations = {OC_NAME: name, OC_TYPE: type_}
        properties = component.get("properties") or {}
        for prop in properties.get("property", []):
            pn = xml_get(prop, "name")
            pv = xml_get(prop, "state.value")
            if pn is not None:
                annotations[pn] = pv

        subcomponents = component.get("subcomponents") or {}
        subcomponent_names = [
            xml_get(s, "name") for s in subcomponents.get("subcomponent", [])
        ]
        subcomponent_names = [n for n in subcomponent_names if n is not None]

        def subcomponent_of_type(t):
            for n in subcomponent_names:
                if types.get(n) == t:
                    return n
            return None

        if PORT_TYPE not in annotations:
            transceiver = subcomponent_of_type(TYPES_TRANSCEIVER)
            optical_channel = subcomponent_of_type(TYPES_OPTICAL_CHANNEL)
            if transceiver is not None:
                annotations[PORT_TYPE] = PortType.CLIENT.value
                annotations[OC_TRANSCEIVER] = transceiver
            elif optical_channel is not None:
                annotations[PORT_TYPE] = PortType.LINE.value
                annotations[OC_OPTICAL_CHANNEL] = optical_channel

        port_type = annotations.get(PORT_TYPE)
        if port_type not in (PortType.CLIENT.value, PortType.LINE.value):
            logger.error(f"PORT {name} is of UNKNOWN type")
            return None

        number = fujitsu_port.encode(name)
        logger.debug(f"PORT {name} number {number} added as {port_type.upper()} port")
        return Port(number, annotations)

from enum import Enum
import logging

from lxml import etree

from odtn.lib.errors import ProtocolError, UnsupportedError
from .flowrule import OchSignal
from .port import decode
from .util import *

logger = logging.getLogger(__name__)

TARGET_POWER_RANGE = (-5.0, 1.0)
INPUT_POWER_RANGE = (-30.0, 1.0)


class Direction(Enum):
    INGRESS = "INGRESS"
    EGRESS = "EGRESS"


def _check_component(component):
    if isinstance(component, (Direction, OchSignal)):
        return
    raise UnsupportedError(
        f"cannot parse the component type {type(component).__name__}: {component}"
    )


def _optical_channel(parent, name, with_config):
    components = sub_ele_ns(
        parent, "components", OC_PLATFORM_NS, nsmap={None: OC_PLATFORM_NS}
    )
    component = sub_ele_ns(components, "component", OC_PLATFORM_NS)
    sub_leaf(component, "name", OC_PLATFORM_NS, name)
    if with_config:
        config = sub_ele_ns(component, "config", OC_PLATFORM_NS)
        sub_leaf(config, "name", OC_PLATFORM_NS, name)
    return sub_ele_ns(
        component,
        "optical-channel",
        OC_TERMINAL_DEVICE_NS,
        nsmap={None: OC_TERMINAL_DEVICE_NS},
    )


def target_power_filter(name):
    filter = etree.Element("filter")
    och = _optical_channel(filter, name, True)
    sub_ele_ns(och, "config", OC_TERMINAL_DEVICE_NS)
    return filter[0]


def target_power_config(name, power):
    config = new_config()
    och = _optical_channel(config, name, True)
    och_config = sub_ele_ns(och, "config", OC_TERMINAL_DEVICE_NS)
    sub_leaf(och_config, "target-output-power", OC_TERMINAL_DEVICE_NS, power)
    return config


def optical_channel_state_filter(name, leaf):
    filter = etree.Element("filter")
    och = _optical_channel(filter, name, False)
    state = sub_ele_ns(och, "state", OC_TERMINAL_DEVICE_NS)
    power = sub_ele_ns(state, leaf, OC_TERMINAL_DEVICE_NS)
    sub_ele_ns(power, "instant", OC_TERMINAL_DEVICE_NS)
    return filter[0]


def _to_float(value):
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        logger.warning(f"invalid power value: {value}")
        return None


class PowerConfig:
    """Optical power of Fujitsu T600 ports.

    Every method takes a component, either a Direction or an OchSignal. Both
    address the optical channel of the port.
    """

    def __init__(self, device_id, controller):
        self.device_id = device_id
        self.controller = controller

    def _session(self):
        return self.controller.get_session(self.device_id)

    def get_target_power(self, port, component):
        _check_component(component)
        name = decode(port)
        reply = self._session().rpc(filtered_get_config(target_power_filter(name)))
        return _to_float(xml_get(parse_reply(reply), TARGET_OUTPUT_POWER_PATH))

    def set_target_power(self, port, component, power):
        _check_component(component)
        name = decode(port)
        config = target_power_config(name, power)
        logger.info(f"Setting power {to_string(config)}")
        session = self._session()
        ok = session.edit_config(DATASTORE_CANDIDATE, None, to_string(config))
        if not ok:
            raise ProtocolError(
                f"the <edit-config> operation to set target-output-power of "
                f"Port({port}:{component}) failed"
            )
        session.commit()

    def _current(self, port, component, leaf, path):
        _check_component(component)
        name = decode(port)
        request = filtered_get(optical_channel_state_filter(name, leaf))
        reply = self._session().rpc(request)
        return _to_float(xml_get(parse_reply(reply), path))

    def current_power(self, port, component):
        return self._current(port, component, "output-power", OUTPUT_POWER_PATH)

    def current_input_power(self, port, component):
        return self._current(port, component, "input-power", INPUT_POWER_PATH)

    def get_target_power_range(self, port, component):
        return TARGET_POWER_RANGE

    def get_input_power_range(self, port, component):
        return INPUT_POWER_RANGE

import logging
from xml.parsers.expat import ExpatError

from lxml import etree
from ncclient.xml_ import BASE_NS_1_0, qualify, sub_ele_ns
import xmltodict

from odtn.lib.errors import ProtocolError

logger = logging.getLogger(__name__)

######################
# Namespaces
######################
OC_PLATFORM_NS = "http://openconfig.net/yang/platform"
OC_PLATFORM_TYPES_NS = "http://openconfig.net/yang/platform-types"
OC_TERMINAL_DEVICE_NS = "http://openconfig.net/yang/terminal-device"
OC_TRANSPORT_TYPES_NS = "http://openconfig.net/yang/transport-types"

REPLY_NAMESPACES = {
    BASE_NS_1_0: None,
    OC_PLATFORM_NS: None,
    OC_PLATFORM_TYPES_NS: None,
    OC_TERMINAL_DEVICE_NS: None,
    OC_TRANSPORT_TYPES_NS: None,
}

######################
# RPC framing
######################
RPC_TAG_NETCONF_BASE = f'<rpc xmlns="{BASE_NS_1_0}">'
RPC_CLOSE_TAG = "</rpc>"

DATASTORE_CANDIDATE = "candidate"
DATASTORE_RUNNING = "running"

######################
# Component naming
######################
PREFIX_PORT = "port-"
PREFIX_OPTICAL_CHANNEL = "otsi-"
PREFIX_TRANSCEIVER = "transceiver-"

######################
# Values Fujitsu T600
######################
OPERATION_ENABLE = "ENABLED"
OPERATION_DELETE = "delete"
DEFAULT_TARGET_POWER = "0.0"
TTI_MSG = "hello"
FALSE = "false"
LOOPBACK_NONE = "NONE"

OC_TYPE_PROT_OTN = "oc-opt-types:PROT_OTN"
OC_TYPE_PROT_ETH = "oc-opt-types:PROT_ETHERNET"
OC_TYPE_PROT_ODUCN = "oc-opt-types:PROT_ODUCN"
OC_TYPE_TRIB_RATE_100G = "oc-opt-types:TRIB_RATE_100G"
OC_TYPE_PROT_100GE = "oc-opt-types:PROT_100GE"
OC_TYPE_PROT_ODU4 = "oc-opt-types:PROT_ODU4"
OC_PLATFORM_TYPES_PORT = "oc-platform-types:PORT"
OC_PLATFORM_ACTIVE = "oc-platform-types:ACTIVE"

ASSIGNMENT_OPTICAL_CHANNEL = "OPTICAL_CHANNEL"
ASSIGNMENT_LOGICAL_CHANNEL = "LOGICAL_CHANNEL"
TYPES_OPTICAL_CHANNEL = "OPTICAL_CHANNEL"
TYPES_TRANSCEIVER = "TRANSCEIVER"

# Line logical channel index per optical channel of a T600 with two
# line cards.
DEFAULT_LINE_CHANNEL_INDEX = {
    "otsi-1/1/0/E1": 10,
    "otsi-1/1/0/E2": 20,
    "otsi-1/2/0/E1": 30,
    "otsi-1/2/0/E2": 40,
}

######################
# Reply paths
######################
LOGICAL_CHANNEL_INDEX_PATH = (
    "data.terminal-device.logical-channels.channel."
    "logical-channel-assignments.assignment.state.index"
)
PRE_FEC_BER_PATH = (
    "data.terminal-device.logical-channels.channel.otn.state.pre-fec-ber.instant"
)
TARGET_OUTPUT_POWER_PATH = (
    "data.components.component.optical-channel.config.target-output-power"
)
OUTPUT_POWER_PATH = (
    "data.components.component.optical-channel.state.output-power.instant"
)
INPUT_POWER_PATH = "data.components.component.optical-channel.state.input-power.instant"


def new_root(tag, ns):
    return etree.Element(qualify(tag, ns), nsmap={None: ns})


def new_config():
    return etree.Element(qualify("config"), nsmap={"nc": BASE_NS_1_0})


def sub_leaf(parent, tag, ns, value, nsmap=None):
    if nsmap:
        ele = sub_ele_ns(parent, tag, ns, nsmap=nsmap)
    else:
        ele = sub_ele_ns(parent, tag, ns)
    ele.text = str(value)
    return ele


def mark_delete(ele):
    ele.set(qualify("operation"), OPERATION_DELETE)
    return ele


def to_string(ele):
    return etree.tostring(ele).decode()


def filtered_get(filter):
    """Wrap a subtree filter into a <get> RPC document.

    Args:
        filter (lxml.etree._Element): Subtree filter.

    Returns:
        str: RPC document.
    """
    return (
        RPC_TAG_NETCONF_BASE
        + "<get><filter type='subtree'>"
        + to_string(filter)
        + "</filter></get>"
        + RPC_CLOSE_TAG
    )


def filtered_get_config(filter, source=DATASTORE_RUNNING):
    return (
        RPC_TAG_NETCONF_BASE
        + f"<get-config><source><{source}/></source><filter type='subtree'>"
        + to_string(filter)
        + "</filter></get-config>"
        + RPC_CLOSE_TAG
    )


def parse_reply(reply, force_list=None):
    """Parse an <rpc-reply> document into a dict.

    Known OpenConfig and NETCONF namespaces are dropped from the keys.
    Elements named in force_list are always parsed into lists.

    Raises:
        ProtocolError: The reply is not well-formed XML.
    """
    try:
        data = xmltodict.parse(
            reply,
            process_namespaces=True,
            namespaces=REPLY_NAMESPACES,
            force_list=force_list,
        )
    except ExpatError as e:
        raise ProtocolError(f"malformed reply: {e}") from e
    return data.get("rpc-reply", data) or {}


def _walk(data, path):
    cur = data
    for key in path.split("."):
        if isinstance(cur, list):
            if len(cur) == 0:
                return None
            cur = cur[0]
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
        if cur is None:
            return None
    return cur


def xml_subtree(data, path, default=None):
    """Look up the node at a dotted path in a parsed reply."""
    cur = _walk(data, path)
    return default if cur is None else cur


def xml_get(data, path, default=None):
    """Look up the text of a leaf at a dotted path in a parsed reply.

    The first element is taken wherever the path crosses a list.
    """
    cur = _walk(data, path)
    if isinstance(cur, list):
        cur = cur[0] if cur else None
    if isinstance(cur, dict):
        cur = cur.get("#text")
    return default if cur is None else cur

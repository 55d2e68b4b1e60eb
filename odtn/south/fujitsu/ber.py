import logging

from odtn.lib.errors import FormatError
from .port import decode
from .util import *

logger = logging.getLogger(__name__)


def otn_state_filter(index):
    td = new_root("terminal-device", OC_TERMINAL_DEVICE_NS)
    channel = sub_ele_ns(
        sub_ele_ns(td, "logical-channels", OC_TERMINAL_DEVICE_NS),
        "channel",
        OC_TERMINAL_DEVICE_NS,
    )
    sub_leaf(channel, "index", OC_TERMINAL_DEVICE_NS, index)
    config = sub_ele_ns(channel, "config", OC_TERMINAL_DEVICE_NS)
    sub_leaf(config, "admin-state", OC_TERMINAL_DEVICE_NS, OPERATION_ENABLE)
    sub_ele_ns(channel, "otn", OC_TERMINAL_DEVICE_NS)
    sub_ele_ns(channel, "state", OC_TERMINAL_DEVICE_NS)
    return td


class BitErrorRate:
    """Bit error rate of Fujitsu T600 line ports.

    Args:
        device_id (str): Device identifier.
        controller (NetconfController): Provides the NETCONF session of the device.
        line_channel_index (dict): Line logical channel index per optical
            channel name.
    """

    def __init__(self, device_id, controller, line_channel_index=None):
        self.device_id = device_id
        self.controller = controller
        if line_channel_index is None:
            line_channel_index = DEFAULT_LINE_CHANNEL_INDEX
        self.line_channel_index = dict(line_channel_index)

    def get_pre_fec_ber(self, port):
        """Get the instant pre-FEC BER of a line port.

        Args:
            port (int): Port number.

        Returns:
            float: Pre-FEC BER, or None if the port is not a line port or the
                device does not report a value.

        Raises:
            ProtocolError: The device could not be queried.
        """
        try:
            otsi = decode(port)
        except FormatError as e:
            logger.warning(f"{self.device_id}: {e}")
            return None
        if not otsi.startswith(PREFIX_OPTICAL_CHANNEL):
            logger.debug(f"{self.device_id}: port {port} is not a line port")
            return None
        index = self.line_channel_index.get(otsi)
        if index is None:
            logger.warning(f"{self.device_id}: no line logical channel for {otsi}")
            return None

        request = filtered_get(otn_state_filter(index))
        logger.debug(f"REQUEST getPreFecBer to device: {request}")
        session = self.controller.get_session(self.device_id)
        reply = session.rpc(request)
        logger.debug(f"REPLY from device: {reply}")
        value = xml_get(parse_reply(reply), PRE_FEC_BER_PATH)
        logger.debug(f"currentPreFecBer from device: {value}")
        if value is None:
            return None
        try:
            return float(value)
        except ValueError:
            logger.warning(f"{self.device_id}: invalid pre-FEC BER {value!r}")
            return None

    def get_post_fec_ber(self, port):
        return None

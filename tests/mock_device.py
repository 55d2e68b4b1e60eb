import logging
from lxml import etree
from ncclient.xml_ import BASE_NS_1_0

from odtn.lib.connector.base import Session
from odtn.lib.errors import ProtocolError
from odtn.lib.device import (
    Port,
    PortType,
    PORT_TYPE,
    OC_OPTICAL_CHANNEL,
    OC_TRANSCEIVER,
)

logger = logging.getLogger(__name__)

TD_NS = "http://openconfig.net/yang/terminal-device"
NS = {"td": TD_NS, "nc": BASE_NS_1_0}

EMPTY_REPLY = f'<rpc-reply xmlns="{BASE_NS_1_0}" message-id="1"><data/></rpc-reply>'

INDEX_REPLY = """<rpc-reply xmlns="{base}" message-id="1">
<data>
<terminal-device xmlns="{td}">
<logical-channels>
<channel>
<index>{index}</index>
<logical-channel-assignments>
<assignment>
<index>{index}</index>
<state>
<index>{index}</index>
<optical-channel>{otsi}</optical-channel>
</state>
</assignment>
</logical-channel-assignments>
</channel>
</logical-channels>
</terminal-device>
</data>
</rpc-reply>"""


def line_port(number, otsi):
    return Port(
        number, {PORT_TYPE: PortType.LINE.value, OC_OPTICAL_CHANNEL: otsi}
    )


def client_port(number, transceiver):
    return Port(
        number, {PORT_TYPE: PortType.CLIENT.value, OC_TRANSCEIVER: transceiver}
    )


class MockT600(Session):
    """Records every operation and keeps the line logical channels it was
    asked to create."""

    def __init__(self):
        self.logs = []
        self.channels = {}
        self.replies = []
        self.edit_ok = True
        self.fail_discovery = False
        self.closed = False

    @property
    def type(self):
        return "mock"

    def edits(self):
        return [args[2] for op, args in self.logs if op == "edit_config"]

    def ops(self):
        return [op for op, _ in self.logs]

    def rpc(self, request):
        self.logs.append(("rpc", (request,)))
        root = etree.fromstring(request.encode())
        och = root.find(".//td:logical-channel-assignments//td:optical-channel", NS)
        if och is not None:
            if self.fail_discovery:
                raise ProtocolError("discovery failed")
            index = self.channels.get(och.text)
            if index is None:
                return EMPTY_REPLY
            return INDEX_REPLY.format(
                base=BASE_NS_1_0, td=TD_NS, index=index, otsi=och.text
            )
        for key, reply in self.replies:
            if key in request:
                return reply
        return EMPTY_REPLY

    def edit_config(self, target, default_operation, config):
        self.logs.append(("edit_config", (target, default_operation, config)))
        if not self.edit_ok:
            return False
        root = etree.fromstring(config.encode())
        for channel in root.iterfind(".//td:channel", NS):
            index = channel.findtext("td:index", namespaces=NS)
            if channel.get(f"{{{BASE_NS_1_0}}}operation") == "delete":
                self.channels = {
                    k: v for k, v in self.channels.items() if str(v) != index
                }
                continue
            t = channel.findtext(
                "td:logical-channel-assignments/td:assignment/td:config/td:assignment-type",
                namespaces=NS,
            )
            if t == "OPTICAL_CHANNEL":
                otsi = channel.findtext(
                    "td:logical-channel-assignments/td:assignment/td:config/td:optical-channel",
                    namespaces=NS,
                )
                self.channels[otsi] = int(index)
        return True

    def commit(self):
        self.logs.append(("commit", ()))

    def close(self):
        self.closed = True

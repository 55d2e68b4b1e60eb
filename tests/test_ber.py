import unittest
import logging
from lxml import etree

from odtn.lib.connector.netconf import NetconfController
from odtn.lib.errors import ProtocolError
from odtn.south.fujitsu.ber import BitErrorRate
from .mock_device import MockT600, NS

DEVICE_ID = "netconf:192.0.2.1:830"

BER_REPLY = """<rpc-reply xmlns="urn:ietf:params:xml:ns:netconf:base:1.0" message-id="1">
<data>
<terminal-device xmlns="http://openconfig.net/yang/terminal-device">
<logical-channels>
<channel>
<index>30</index>
<otn>
<state>
<pre-fec-ber>
<instant>1.2E-5</instant>
</pre-fec-ber>
</state>
</otn>
</channel>
</logical-channels>
</terminal-device>
</data>
</rpc-reply>"""


class TestBitErrorRate(unittest.TestCase):
    def setUp(self):
        logging.basicConfig(level=logging.DEBUG)
        self.device = MockT600()
        self.controller = NetconfController()
        self.controller.add_session(DEVICE_ID, self.device)
        self.ber = BitErrorRate(DEVICE_ID, self.controller)

    def test_pre_fec_ber(self):
        self.device.replies.append(("<otn/>", BER_REPLY))
        self.assertEqual(self.ber.get_pre_fec_ber(12001), 1.2e-5)

        xml = etree.fromstring(self.device.logs[0][1][0].encode())
        channel = xml.find(".//td:channel", NS)
        self.assertEqual(channel.findtext("td:index", namespaces=NS), "30")
        self.assertEqual(
            channel.findtext("td:config/td:admin-state", namespaces=NS), "ENABLED"
        )

    def test_pre_fec_ber_not_available(self):
        self.assertEqual(self.ber.get_pre_fec_ber(11001), None)
        self.assertEqual(len(self.device.logs), 1)

    def test_not_a_line_port(self):
        self.assertEqual(self.ber.get_pre_fec_ber(1101), None)
        self.assertEqual(self.ber.get_pre_fec_ber(1), None)
        self.assertEqual(self.device.logs, [])

    def test_unknown_line_channel(self):
        ber = BitErrorRate(DEVICE_ID, self.controller, {"otsi-1/1/0/E1": 10})
        self.assertEqual(ber.get_pre_fec_ber(12001), None)
        self.assertEqual(self.device.logs, [])

    def test_rpc_failure(self):
        self.device.replies.append(("<otn/>", "<rpc-reply"))
        with self.assertRaises(ProtocolError):
            self.ber.get_pre_fec_ber(11001)

    def test_post_fec_ber(self):
        self.assertEqual(self.ber.get_post_fec_ber(11001), None)
        self.assertEqual(self.device.logs, [])


if __name__ == "__main__":
    unittest.main()

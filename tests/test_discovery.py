import unittest
import logging

from odtn.lib.connector.netconf import NetconfController
from odtn.lib.device import DeviceInventory, PortType
from odtn.lib.errors import ProtocolError
from odtn.south.fujitsu.discovery import TerminalDeviceDiscovery
from .mock_device import MockT600

DEVICE_ID = "netconf:192.0.2.1:830"

DETAILS_REPLY = """<rpc-reply xmlns="urn:ietf:params:xml:ns:netconf:base:1.0" message-id="1">
<data>
<components xmlns="http://openconfig.net/yang/platform">
<component>
<state>
<mfg-name>FUJITSU</mfg-name>
<serial-no>FJ0001</serial-no>
<software-version>R3.1</software-version>
<id>7</id>
</state>
</component>
</components>
</data>
</rpc-reply>"""

COMPONENTS_REPLY = """<rpc-reply xmlns="urn:ietf:params:xml:ns:netconf:base:1.0" message-id="2">
<data>
<components xmlns="http://openconfig.net/yang/platform">
<component>
<name>port-1/1/0/E1</name>
<state>
<type xmlns:oc-platform-types="http://openconfig.net/yang/platform-types">oc-platform-types:PORT</type>
<oper-status xmlns:oc-platform-types="http://openconfig.net/yang/platform-types">oc-platform-types:ACTIVE</oper-status>
</state>
<properties>
<property>
<name>vendor-port</name>
<state><value>E1</value></state>
</property>
</properties>
<subcomponents>
<subcomponent><name>otsi-1/1/0/E1</name></subcomponent>
</subcomponents>
</component>
<component>
<name>otsi-1/1/0/E1</name>
<state>
<type xmlns:oc-opt-types="http://openconfig.net/yang/transport-types">oc-opt-types:OPTICAL_CHANNEL</type>
</state>
</component>
<component>
<name>port-1/1/0/C3</name>
<state>
<type xmlns:oc-platform-types="http://openconfig.net/yang/platform-types">oc-platform-types:PORT</type>
<oper-status xmlns:oc-platform-types="http://openconfig.net/yang/platform-types">oc-platform-types:ACTIVE</oper-status>
</state>
<subcomponents>
<subcomponent><name>transceiver-1/1/0/C3</name></subcomponent>
</subcomponents>
</component>
<component>
<name>transceiver-1/1/0/C3</name>
<state>
<type xmlns:oc-platform-types="http://openconfig.net/yang/platform-types">oc-platform-types:TRANSCEIVER</type>
</state>
</component>
<component>
<name>port-1/1/0/C4</name>
<state>
<type xmlns:oc-platform-types="http://openconfig.net/yang/platform-types">oc-platform-types:PORT</type>
<oper-status xmlns:oc-platform-types="http://openconfig.net/yang/platform-types">oc-platform-types:INACTIVE</oper-status>
</state>
<subcomponents>
<subcomponent><name>transceiver-1/1/0/C4</name></subcomponent>
</subcomponents>
</component>
<component>
<name>port-1/1/0/C5</name>
<state>
<type xmlns:oc-platform-types="http://openconfig.net/yang/platform-types">oc-platform-types:PORT</type>
<oper-status xmlns:oc-platform-types="http://openconfig.net/yang/platform-types">oc-platform-types:ACTIVE</oper-status>
</state>
</component>
<component>
<name>port-mgmt</name>
<state>
<type xmlns:oc-platform-types="http://openconfig.net/yang/platform-types">oc-platform-types:PORT</type>
<oper-status xmlns:oc-platform-types="http://openconfig.net/yang/platform-types">oc-platform-types:ACTIVE</oper-status>
</state>
<subcomponents>
<subcomponent><name>transceiver-1/1/0/C3</name></subcomponent>
</subcomponents>
</component>
<component>
<name>chassis</name>
<state>
<type xmlns:oc-platform-types="http://openconfig.net/yang/platform-types">oc-platform-types:CHASSIS</type>
</state>
</component>
</components>
</data>
</rpc-reply>"""


class TestTerminalDeviceDiscovery(unittest.TestCase):
    def setUp(self):
        logging.basicConfig(level=logging.DEBUG)
        self.device = MockT600()
        self.controller = NetconfController()
        self.controller.add_session(DEVICE_ID, self.device)
        self.inventory = DeviceInventory()
        self.discovery = TerminalDeviceDiscovery(
            DEVICE_ID, self.controller, self.inventory
        )

    def test_device_details(self):
        self.device.replies.append(("<state", DETAILS_REPLY))
        details = self.discovery.discover_device_details()
        self.assertEqual(details.vendor, "FUJITSU")
        self.assertEqual(details.serial_number, "FJ0001")
        self.assertEqual(details.sw_version, "R3.1")
        self.assertEqual(details.hw_version, "0.2.1")
        self.assertEqual(details.chassis_id, 7)
        self.assertEqual(details.type, "TERMINAL_DEVICE")

    def test_device_details_defaults(self):
        details = self.discovery.discover_device_details()
        self.assertEqual(details.vendor, "NOVENDOR")
        self.assertEqual(details.serial_number, "0xCAFEBEEF")
        self.assertEqual(details.sw_version, "0.2.1")
        self.assertEqual(details.chassis_id, 128)

    def test_device_details_failure(self):
        self.device.replies.append(("<state", "<rpc-reply"))
        with self.assertRaises(ProtocolError):
            self.discovery.discover_device_details()

        self.controller.disconnect(DEVICE_ID)
        with self.assertRaises(ProtocolError):
            self.discovery.discover_device_details()

    def test_port_details(self):
        self.device.replies.append(("components", COMPONENTS_REPLY))
        ports = self.discovery.discover_port_details()

        self.assertEqual([p.number for p in ports], [11001, 1103])
        line, client = ports
        self.assertEqual(line.port_type, PortType.LINE)
        self.assertEqual(line.optical_channel, "otsi-1/1/0/E1")
        self.assertEqual(line.annotations["oc-name"], "port-1/1/0/E1")
        self.assertEqual(line.annotations["vendor-port"], "E1")
        self.assertEqual(client.port_type, PortType.CLIENT)
        self.assertEqual(client.transceiver, "transceiver-1/1/0/C3")

        self.assertEqual(self.inventory.line_ports(DEVICE_ID), {11001})
        self.assertEqual(self.inventory.get_port(DEVICE_ID, 1103), client)

    def test_port_details_failure(self):
        self.device.replies.append(("components", "not xml"))
        self.assertEqual(self.discovery.discover_port_details(), [])
        self.assertEqual(self.inventory.get_ports(DEVICE_ID), [])


if __name__ == "__main__":
    unittest.main()

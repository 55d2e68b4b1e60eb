import unittest

from odtn.lib.errors import FormatError
from odtn.south.fujitsu import port


class TestPortCodec(unittest.TestCase):
    def test_encode(self):
        self.assertEqual(port.encode("port-1/1/0/E1"), 11001)
        self.assertEqual(port.encode("1/2/0/E2"), 12002)
        self.assertEqual(port.encode("port-1/1/0/C1"), 1101)
        self.assertEqual(port.encode("1/2/0/C11"), 1211)
        self.assertEqual(port.encode("otsi-2/1/0/E1"), 21001)
        self.assertEqual(port.encode("transceiver-2/2/0/C12"), 2212)

    def test_decode(self):
        self.assertEqual(port.decode(11001), "otsi-1/1/0/E1")
        self.assertEqual(port.decode(12002), "otsi-1/2/0/E2")
        self.assertEqual(port.decode(1101), "transceiver-1/1/0/C1")
        self.assertEqual(port.decode(1211), "transceiver-1/2/0/C11")
        self.assertEqual(port.decode("2212"), "transceiver-2/2/0/C12")

    def test_round_trip(self):
        for shelf in [1, 2]:
            for slot in [1, 2]:
                for index in range(1, 13):
                    name = f"{shelf}/{slot}/0/C{index}"
                    self.assertEqual(port.decode(port.encode(name)), "transceiver-" + name)
                for index in range(1, 10):
                    name = f"{shelf}/{slot}/0/E{index}"
                    self.assertEqual(port.decode(port.encode(name)), "otsi-" + name)

    def test_line_index_keeps_last_digit(self):
        self.assertEqual(port.encode("1/1/0/E12"), 11002)
        self.assertEqual(port.decode(11002), "otsi-1/1/0/E2")

    def test_invalid_names(self):
        for name in [
            "1/1/E1",
            "1/1/0/0/E1",
            "1/1/0/X1",
            "1/1/0/E",
            "1/1/0/C0",
            "1/1/0/C100",
            "a/1/0/C1",
            "3/1/0/C1",
            "port-1/9/0/E1",
            "0/1/0/E1",
            "bogus-1/1/0/C1",
            "Port-1/1/0/C1",
            "",
        ]:
            with self.assertRaises(FormatError, msg=name):
                port.encode(name)

    def test_invalid_numbers(self):
        for number in [1, 110, 110011, -1101, "abcd", 99001, 3101, 1901, 1100, 11101]:
            with self.assertRaises(FormatError, msg=number):
                port.decode(number)

    def test_client_suffix(self):
        self.assertEqual(port.client_suffix("transceiver-1/1/0/C3"), "3")
        self.assertEqual(port.client_suffix("port-1/2/0/C11"), "11")
        with self.assertRaises(FormatError):
            port.client_suffix("otsi-1/1/0/E1")


if __name__ == "__main__":
    unittest.main()

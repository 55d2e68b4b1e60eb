import unittest
import threading

from odtn.south.fujitsu.cache import InMemoryConnectionCache
from odtn.south.fujitsu.flowrule import FlowRule, OchSignal


class TestInMemoryConnectionCache(unittest.TestCase):
    def setUp(self):
        self.cache = InMemoryConnectionCache()

    def test_unknown_device(self):
        self.assertEqual(self.cache.get("dev1"), [])
        self.assertEqual(self.cache.size("dev1"), 0)
        self.cache.remove("dev1", "LINE_INGRESS-1101-11001")
        self.assertEqual(self.cache.size("dev1"), 0)

    def test_add_remove(self):
        r1 = FlowRule(1101, 11001, OchSignal(0))
        r2 = FlowRule(1103, 11001)
        self.cache.add("dev1", "LINE_INGRESS-1101-11001", r1)
        self.cache.add("dev1", "CLIENT_INGRESS-1103-11001", r2)
        self.assertEqual(self.cache.get("dev1"), [r1, r2])
        self.assertEqual(self.cache.size("dev1"), 2)
        self.assertEqual(self.cache.size("dev2"), 0)

        self.cache.remove("dev1", "LINE_INGRESS-1101-11001")
        self.assertEqual(self.cache.get("dev1"), [r2])
        self.cache.remove("dev1", "LINE_INGRESS-1101-11001")
        self.assertEqual(self.cache.get("dev1"), [r2])

    def test_replace(self):
        r1 = FlowRule(1101, 11001, OchSignal(0))
        r2 = FlowRule(1101, 11001, OchSignal(2))
        self.cache.add("dev1", "LINE_INGRESS-1101-11001", r1)
        self.cache.add("dev1", "LINE_INGRESS-1101-11001", r2)
        self.assertEqual(self.cache.get("dev1"), [r2])

    def test_concurrent_add(self):
        def add(device_id):
            for i in range(100):
                self.cache.add(device_id, f"CLIENT_INGRESS-{i}-11001", FlowRule(i, 11001))

        threads = [threading.Thread(target=add, args=(f"dev{n}",)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        for n in range(4):
            self.assertEqual(self.cache.size(f"dev{n}"), 100)


if __name__ == "__main__":
    unittest.main()

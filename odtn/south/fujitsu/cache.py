"""Connection cache for terminal device drivers.

Terminal devices cannot report back the flow rules installed on them. The
cache records the connections a driver applied successfully. It is the
driver's belief about the device, not the device's own state.
"""


from abc import abstractmethod
import logging
import threading


logger = logging.getLogger(__name__)


class ConnectionCache:
    """Base for connection caches.

    It is an abstract class. Users should depend on this interface instead of
    subclass implementations.
    """

    @abstractmethod
    def add(self, device_id, name, rule):
        """Record an applied connection.

        An existing connection with the same name is replaced.

        Args:
            device_id (str): Device identifier.
            name (str): Connection name.
            rule (FlowRule): Applied flow rule.
        """
        pass

    @abstractmethod
    def remove(self, device_id, name):
        """Forget a removed connection.

        Removing an unknown connection is a no-op.

        Args:
            device_id (str): Device identifier.
            name (str): Connection name.
        """
        pass

    @abstractmethod
    def get(self, device_id):
        """Get the rules of all connections of a device.

        Args:
            device_id (str): Device identifier.

        Returns:
            list of FlowRule: Rules in the order they were added. Empty if the
                device is unknown.
        """
        pass

    @abstractmethod
    def size(self, device_id):
        """Get the number of connections of a device.

        Args:
            device_id (str): Device identifier.

        Returns:
            int: Number of connections.
        """
        pass


class InMemoryConnectionCache(ConnectionCache):
    """In-memory connection cache shared by every driver of the process.

    Attributes:
        _data (dict): Connections per device id. Each value maps connection
            names to flow rules.
    """

    def __init__(self):
        self._data = {}
        self._lock = threading.Lock()

    def add(self, device_id, name, rule):
        with self._lock:
            connections = self._data.setdefault(device_id, {})
            connections.pop(name, None)
            connections[name] = rule
        logger.debug("%s: cached connection %s", device_id, name)

    def remove(self, device_id, name):
        with self._lock:
            connections = self._data.get(device_id)
            if connections is None or name not in connections:
                logger.debug("%s: connection %s is not cached", device_id, name)
                return
            del connections[name]
            if not connections:
                del self._data[device_id]
        logger.debug("%s: removed connection %s", device_id, name)

    def get(self, device_id):
        with self._lock:
            return list(self._data.get(device_id, {}).values())

    def size(self, device_id):
        with self._lock:
            return len(self._data.get(device_id, {}))

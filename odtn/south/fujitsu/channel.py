"""Logical channel provisioning for Fujitsu T600 terminal devices.

The device cannot report which flow rules are installed. Each flow rule is
translated into OpenConfig terminal-device logical channel operations, and
every connection applied successfully is recorded in the connection cache.

Line side rules (LINE_INGRESS, LINE_EGRESS)
    1. find the line logical channel bound to the optical channel, create it
       if it does not exist
    2. settle delay
    3. set the central frequency and target output power of the optical
       channel

Client side rules (CLIENT_INGRESS, CLIENT_EGRESS)
    1. find or create the line logical channel, as above
    2. settle delay
    3. create the OTN and Ethernet logical channels mapping the client port
       onto the line logical channel

The transponder is bidirectional. Ingress and egress rules for the same
ports produce the same configuration, so a bidirectional connection sends
the same document twice.
"""

import logging
import os
import threading

from odtn.lib.errors import (
    Error,
    FormatError,
    NotFoundError,
    ProtocolError,
    ChannelDiscoveryError,
    SessionUnavailableError,
    SettleAbortedError,
)
from .flowrule import FlowEntry, classify
from .port import client_suffix
from .util import *

logger = logging.getLogger(__name__)

DEFAULT_SETTLE_DELAY = float(os.getenv("ODTN_SETTLE_DELAY", 1.0))

NOT_FOUND = -1


class PortLocks:
    """Locks serializing discover-then-create per device and optical channel.

    Every provisioner of a device must use the same registry.
    """

    def __init__(self):
        self._locks = {}
        self._lock = threading.Lock()

    def get(self, device_id, otsi):
        with self._lock:
            return self._locks.setdefault((device_id, otsi), threading.Lock())


PORT_LOCKS = PortLocks()


def assignment_indexes(line_index, client):
    """Derive the OTN and Ethernet logical channel indexes of a client port.

    Args:
        line_index (int): Index of the line logical channel.
        client (str): Client transceiver name. e.g. transceiver-1/1/0/C3

    Returns:
        tuple of str: (OTN index, Ethernet index). e.g. ("103", "1003")
    """
    suffix = client_suffix(client)
    return f"{line_index}{suffix}", f"{line_index}0{suffix}"


def logical_channel_filter(otsi):
    td = new_root("terminal-device", OC_TERMINAL_DEVICE_NS)
    channel = sub_ele_ns(
        sub_ele_ns(td, "logical-channels", OC_TERMINAL_DEVICE_NS),
        "channel",
        OC_TERMINAL_DEVICE_NS,
    )
    assignments = sub_ele_ns(
        channel, "logical-channel-assignments", OC_TERMINAL_DEVICE_NS
    )
    assignment = sub_ele_ns(assignments, "assignment", OC_TERMINAL_DEVICE_NS)
    state = sub_ele_ns(assignment, "state", OC_TERMINAL_DEVICE_NS)
    sub_leaf(state, "optical-channel", OC_TERMINAL_DEVICE_NS, otsi)
    return td


def _types_leaf(parent, tag, value):
    return sub_leaf(
        parent,
        tag,
        OC_TERMINAL_DEVICE_NS,
        value,
        nsmap={"oc-opt-types": OC_TRANSPORT_TYPES_NS},
    )


def _assignment(parent, index, assignment_type, ref_tag, ref):
    assignments = sub_ele_ns(
        parent, "logical-channel-assignments", OC_TERMINAL_DEVICE_NS
    )
    assignment = sub_ele_ns(assignments, "assignment", OC_TERMINAL_DEVICE_NS)
    sub_leaf(assignment, "index", OC_TERMINAL_DEVICE_NS, index)
    config = sub_ele_ns(assignment, "config", OC_TERMINAL_DEVICE_NS)
    sub_leaf(config, "index", OC_TERMINAL_DEVICE_NS, index)
    sub_leaf(config, "assignment-type", OC_TERMINAL_DEVICE_NS, assignment_type)
    sub_leaf(config, ref_tag, OC_TERMINAL_DEVICE_NS, ref)


def line_logical_channel_config(otsi, index):
    config = new_config()
    td = sub_ele_ns(
        config,
        "terminal-device",
        OC_TERMINAL_DEVICE_NS,
        nsmap={None: OC_TERMINAL_DEVICE_NS},
    )
    channel = sub_ele_ns(
        sub_ele_ns(td, "logical-channels", OC_TERMINAL_DEVICE_NS),
        "channel",
        OC_TERMINAL_DEVICE_NS,
    )
    sub_leaf(channel, "index", OC_TERMINAL_DEVICE_NS, index)
    c = sub_ele_ns(channel, "config", OC_TERMINAL_DEVICE_NS)
    sub_leaf(c, "index", OC_TERMINAL_DEVICE_NS, index)
    sub_leaf(c, "admin-state", OC_TERMINAL_DEVICE_NS, OPERATION_ENABLE)
    _types_leaf(c, "trib-protocol", OC_TYPE_PROT_ODUCN)
    _types_leaf(c, "logical-channel-type", OC_TYPE_PROT_OTN)
    sub_leaf(c, "test-signal", OC_TERMINAL_DEVICE_NS, FALSE)
    otn = sub_ele_ns(
        sub_ele_ns(channel, "otn", OC_TERMINAL_DEVICE_NS),
        "config",
        OC_TERMINAL_DEVICE_NS,
    )
    sub_leaf(otn, "tti-msg-transmit", OC_TERMINAL_DEVICE_NS, TTI_MSG)
    sub_leaf(otn, "tti-msg-expected", OC_TERMINAL_DEVICE_NS, TTI_MSG)
    _assignment(channel, index, ASSIGNMENT_OPTICAL_CHANNEL, "optical-channel", otsi)
    return config


def optical_channel_frequency_config(otsi, frequency):
    config = new_config()
    components = sub_ele_ns(
        config, "components", OC_PLATFORM_NS, nsmap={None: OC_PLATFORM_NS}
    )
    component = sub_ele_ns(components, "component", OC_PLATFORM_NS)
    sub_leaf(component, "name", OC_PLATFORM_NS, otsi)
    sub_leaf(sub_ele_ns(component, "config", OC_PLATFORM_NS), "name", OC_PLATFORM_NS, otsi)
    och = sub_ele_ns(
        component,
        "optical-channel",
        OC_TERMINAL_DEVICE_NS,
        nsmap={None: OC_TERMINAL_DEVICE_NS},
    )
    c = sub_ele_ns(och, "config", OC_TERMINAL_DEVICE_NS)
    sub_leaf(c, "frequency", OC_TERMINAL_DEVICE_NS, int(frequency.as_mhz()))
    sub_leaf(c, "target-output-power", OC_TERMINAL_DEVICE_NS, DEFAULT_TARGET_POWER)
    return config


def logical_channel_assignment_config(operation, client, index):
    otn_index, eth_index = assignment_indexes(index, client)
    transceiver = client.replace(PREFIX_PORT, PREFIX_TRANSCEIVER)

    config = new_config()
    td = sub_ele_ns(
        config,
        "terminal-device",
        OC_TERMINAL_DEVICE_NS,
        nsmap={None: OC_TERMINAL_DEVICE_NS},
    )

    # OTN mapping layer
    channel = sub_ele_ns(
        sub_ele_ns(td, "logical-channels", OC_TERMINAL_DEVICE_NS),
        "channel",
        OC_TERMINAL_DEVICE_NS,
    )
    sub_leaf(channel, "index", OC_TERMINAL_DEVICE_NS, otn_index)
    c = sub_ele_ns(channel, "config", OC_TERMINAL_DEVICE_NS)
    sub_leaf(c, "index", OC_TERMINAL_DEVICE_NS, otn_index)
    sub_leaf(c, "admin-state", OC_TERMINAL_DEVICE_NS, operation)
    _types_leaf(c, "rate-class", OC_TYPE_TRIB_RATE_100G)
    _types_leaf(c, "trib-protocol", OC_TYPE_PROT_ODU4)
    _types_leaf(c, "logical-channel-type", OC_TYPE_PROT_OTN)
    _assignment(channel, index, ASSIGNMENT_LOGICAL_CHANNEL, "logical-channel", index)

    # Ethernet framing layer
    channel = sub_ele_ns(
        sub_ele_ns(td, "logical-channels", OC_TERMINAL_DEVICE_NS),
        "channel",
        OC_TERMINAL_DEVICE_NS,
    )
    sub_leaf(channel, "index", OC_TERMINAL_DEVICE_NS, eth_index)
    c = sub_ele_ns(channel, "config", OC_TERMINAL_DEVICE_NS)
    sub_leaf(c, "index", OC_TERMINAL_DEVICE_NS, eth_index)
    sub_leaf(c, "admin-state", OC_TERMINAL_DEVICE_NS, operation)
    _types_leaf(c, "rate-class", OC_TYPE_TRIB_RATE_100G)
    _types_leaf(c, "trib-protocol", OC_TYPE_PROT_100GE)
    _types_leaf(c, "logical-channel-type", OC_TYPE_PROT_ETH)
    sub_leaf(c, "loopback-mode", OC_TERMINAL_DEVICE_NS, LOOPBACK_NONE)
    sub_leaf(c, "test-signal", OC_TERMINAL_DEVICE_NS, FALSE)
    ingress = sub_ele_ns(
        sub_ele_ns(channel, "ingress", OC_TERMINAL_DEVICE_NS),
        "config",
        OC_TERMINAL_DEVICE_NS,
    )
    sub_leaf(ingress, "transceiver", OC_TERMINAL_DEVICE_NS, transceiver)
    _assignment(
        channel, index, ASSIGNMENT_LOGICAL_CHANNEL, "logical-channel", otn_index
    )
    return config


def delete_logical_channels_config(*indexes):
    config = new_config()
    td = sub_ele_ns(
        config,
        "terminal-device",
        OC_TERMINAL_DEVICE_NS,
        nsmap={None: OC_TERMINAL_DEVICE_NS},
    )
    channels = sub_ele_ns(td, "logical-channels", OC_TERMINAL_DEVICE_NS)
    for index in indexes:
        channel = mark_delete(sub_ele_ns(channels, "channel", OC_TERMINAL_DEVICE_NS))
        sub_leaf(channel, "index", OC_TERMINAL_DEVICE_NS, index)
    return config


class ChannelProvisioner:
    """Flow rule programming for a Fujitsu T600 terminal device.

    Args:
        device_id (str): Device identifier.
        controller (NetconfController): Provides the NETCONF session of the device.
        inventory (DeviceInventory): Ports of the device with their annotations.
        cache (ConnectionCache): Connections believed to be active. It must be
            shared by every provisioner of the process.
        line_channel_index (dict): Line logical channel index per optical
            channel name.
        settle_delay (float): Seconds to wait after creating a logical channel
            before configuring it.
        locks (PortLocks): Per optical channel locks. Defaults to the registry
            shared by the whole process.
    """

    def __init__(
        self,
        device_id,
        controller,
        inventory,
        cache,
        line_channel_index=None,
        settle_delay=DEFAULT_SETTLE_DELAY,
        locks=None,
    ):
        self.device_id = device_id
        self.controller = controller
        self.inventory = inventory
        self.cache = cache
        if line_channel_index is None:
            line_channel_index = DEFAULT_LINE_CHANNEL_INDEX
        self.line_channel_index = dict(line_channel_index)
        self.settle_delay = settle_delay
        self.locks = PORT_LOCKS if locks is None else locks
        # cancellation events of the batches in progress
        self._batches = set()
        self._lock = threading.Lock()

    def _log(self, msg):
        logger.info(f"OPENCONFIG {self.device_id}: {msg}")

    def _error(self, msg):
        logger.error(f"OPENCONFIG {self.device_id}: {msg}")

    def line_ports(self):
        return self.inventory.line_ports(self.device_id)

    def _annotation(self, port_number, attr):
        try:
            port = self.inventory.get_port(self.device_id, port_number)
        except NotFoundError as e:
            raise FormatError(str(e)) from e
        value = getattr(port, attr)
        if value is None:
            raise FormatError(f"port {port_number} has no {attr} annotation")
        return value

    def get_line_port(self, port_number):
        return self._annotation(port_number, "optical_channel")

    def get_client_port(self, port_number):
        return self._annotation(port_number, "transceiver")

    def get_line_channel_index(self, otsi):
        try:
            return self.line_channel_index[otsi]
        except KeyError:
            raise FormatError(f"incorrect line port name: {otsi}") from None

    def settle(self, cancelled):
        """Wait for the device to apply a created resource.

        Args:
            cancelled (threading.Event): Cancellation event of the batch.

        Raises:
            SettleAbortedError: The batch was cancelled before or while waiting.
        """
        if cancelled.wait(self.settle_delay):
            raise SettleAbortedError(f"settle delay on {self.device_id} cancelled")

    def cancel(self):
        """Cancel the batches in progress.

        A pending settle delay is interrupted and the remaining rules of each
        batch are skipped. Batches started later are not affected.
        """
        with self._lock:
            for cancelled in self._batches:
                cancelled.set()

    def _start_batch(self):
        cancelled = threading.Event()
        with self._lock:
            self._batches.add(cancelled)
        return cancelled

    def _end_batch(self, cancelled):
        with self._lock:
            self._batches.discard(cancelled)

    def _edit_config(self, session, config, what):
        ok = session.edit_config(DATASTORE_CANDIDATE, None, to_string(config))
        session.commit()
        if not ok:
            raise ProtocolError(f"error writing {what}")

    def get_logical_channel_index(self, session, otsi):
        """Get the index of the logical channel assigned to an optical channel.

        Returns:
            int: Logical channel index, or NOT_FOUND.

        Raises:
            ChannelDiscoveryError: The query failed or the reply is malformed.
        """
        try:
            reply = session.rpc(filtered_get(logical_channel_filter(otsi)))
            channel = xml_get(parse_reply(reply), LOGICAL_CHANNEL_INDEX_PATH)
        except ProtocolError as e:
            raise ChannelDiscoveryError(
                f"error getting the logical channels of {otsi}: {e}"
            ) from e
        logger.debug(f"REPLY {reply}")
        if channel is None:
            return NOT_FOUND
        try:
            index = int(channel)
        except ValueError:
            raise ChannelDiscoveryError(
                f"invalid logical channel index {channel!r} for {otsi}"
            ) from None
        logger.debug(f"OpticalChannel {otsi} has index {index}")
        return index

    def create_line_logical_channel(self, session, otsi):
        index = self.get_line_channel_index(otsi)
        config = line_logical_channel_config(otsi, index)
        self._edit_config(session, config, "the logical channel")
        return index

    def set_optical_channel_frequency(self, session, otsi, frequency):
        config = optical_channel_frequency_config(otsi, frequency)
        self._edit_config(session, config, "channel frequency")

    def set_logical_channel_assignment(self, session, operation, client, index):
        config = logical_channel_assignment_config(operation, client, index)
        logger.info(to_string(config))
        self._edit_config(session, config, "logical channel assignment")

    def delete_logical_channel(self, session, index):
        config = delete_logical_channels_config(index)
        logger.info(to_string(config))
        self._edit_config(session, config, "the logical channel")

    def delete_logical_channel_assignment(self, session, client, index):
        config = delete_logical_channels_config(*assignment_indexes(index, client))
        logger.info(to_string(config))
        self._edit_config(session, config, "logical channel assignment")

    def _discover_or_assume_absent(self, session, otsi):
        try:
            return self.get_logical_channel_index(session, otsi)
        except ChannelDiscoveryError as e:
            self._error(f"{e}, assuming the logical channel is absent")
            return NOT_FOUND

    def ensure_line_logical_channel(self, session, otsi):
        """Create the line logical channel of an optical channel unless it exists.

        A failed creation is logged only. The channel may have been created
        concurrently and the following steps tell whether it exists.
        """
        with self.locks.get(self.device_id, otsi):
            index = self._discover_or_assume_absent(session, otsi)
            if index != NOT_FOUND:
                logger.debug(
                    f"Logical channel already present, skipping creation phase {index}"
                )
                return
            try:
                self.create_line_logical_channel(session, otsi)
            except ProtocolError as e:
                self._error(
                    f"Error creating the LINE logical channel for port {otsi}: {e}"
                )

    def _apply_line(self, session, c, cancelled):
        otsi = self.get_line_port(c.line_port)
        self._log(
            f"Sending LINE FlowRule LINE port {c.line_port}, "
            f"frequency {c.central_frequency}"
        )
        self.ensure_line_logical_channel(session, otsi)
        self.settle(cancelled)
        self.set_optical_channel_frequency(session, otsi, c.central_frequency)
        logger.info(
            f"Frequency for port {otsi} set to {c.central_frequency.as_thz()} THz"
        )

    def _apply_client(self, session, c, cancelled):
        client = self.get_client_port(c.client_port)
        otsi = self.get_line_port(c.line_port)
        self._log(f"Sending CLIENT FlowRule CLIENT port: {client}, LINE port {otsi}")
        self.ensure_line_logical_channel(session, otsi)
        self.settle(cancelled)
        index = self.get_logical_channel_index(session, otsi)
        if index == NOT_FOUND:
            raise ProtocolError(f"no logical channel for {otsi}")
        self.set_logical_channel_assignment(session, OPERATION_ENABLE, client, index)

    def apply_flow_rule(self, session, c, cancelled=None):
        if cancelled is None:
            cancelled = threading.Event()
        if c.is_line:
            self._apply_line(session, c, cancelled)
        else:
            self._apply_client(session, c, cancelled)

    def remove_flow_rule(self, session, c):
        otsi = self.get_line_port(c.line_port)
        if c.is_line:
            self._log(f"Removing LINE FlowRule line port {otsi}")
        else:
            client = self.get_client_port(c.client_port)
            logger.debug(
                f"Removing CLIENT FlowRule device {self.device_id} "
                f"client port: {client}, line port {otsi}"
            )
        index = self.get_logical_channel_index(session, otsi)
        if index == NOT_FOUND:
            logger.warning(f"no logical channel for {otsi}, nothing to remove")
            return
        if c.is_line:
            self.delete_logical_channel(session, index)
        else:
            self.delete_logical_channel_assignment(session, client, index)

    def _session(self):
        try:
            return self.controller.get_session(self.device_id)
        except SessionUnavailableError as e:
            self._error(f"null session: {e}")
            return None

    def apply_flow_rules(self, rules):
        """Apply flow rules to the device.

        Rules are processed one by one. A failing rule does not stop the batch.
        After cancel() the remaining rules are skipped.

        Args:
            rules (list of FlowRule): Rules to apply.

        Returns:
            list of FlowRule: Rules applied without errors.
        """
        session = self._session()
        if session is None:
            return []
        line_ports = self.line_ports()
        added = []
        cancelled = self._start_batch()
        try:
            for i, rule in enumerate(rules):
                if cancelled.is_set():
                    self._error(f"batch cancelled, skipping {len(rules) - i} rules")
                    break
                try:
                    c = classify(rule, line_ports)
                    self.apply_flow_rule(session, c, cancelled)
                except Error as e:
                    self._error(f"failed to apply {rule}: {e}")
                    continue
                self._log(f"added flowrule {rule}")
                self.cache.add(self.device_id, c.connection_name, rule)
                added.append(rule)
        finally:
            self._end_batch(cancelled)
        self._log(f"apply_flow_rules added {len(added)}")
        return added

    def remove_flow_rules(self, rules):
        """Remove flow rules from the device.

        After cancel() the remaining rules are skipped.

        Args:
            rules (list of FlowRule): Rules to remove.

        Returns:
            list of FlowRule: Rules removed without errors.
        """
        session = self._session()
        if session is None:
            return []
        line_ports = self.line_ports()
        removed = []
        cancelled = self._start_batch()
        try:
            for i, rule in enumerate(rules):
                if cancelled.is_set():
                    self._error(f"batch cancelled, skipping {len(rules) - i} rules")
                    break
                try:
                    c = classify(rule, line_ports)
                    self.remove_flow_rule(session, c)
                except Error as e:
                    self._error(f"failed to remove {rule}: {e}")
                    continue
                self.cache.remove(self.device_id, c.connection_name)
                removed.append(rule)
        finally:
            self._end_batch(cancelled)
        self._log(f"remove_flow_rules removed {len(removed)}")
        return removed

    def get_flow_entries(self):
        logger.debug(
            f"get_flow_entries device {self.device_id} "
            f"cache size {self.cache.size(self.device_id)}"
        )
        entries = [FlowEntry(rule) for rule in self.cache.get(self.device_id)]
        self._log(f"get_flow_entries fetched connections {len(entries)}")
        return entries

"""Flow rules for terminal devices and their classification.

A flow rule connects an input port to an output port of the device. A rule
whose actions set an OCh signal tunes a line port to a wavelength (line
side). A rule without one maps a client port onto a line port (client side).

    LINE_INGRESS     in_port -> LINE out_port, OCh signal set
    LINE_EGRESS      LINE in_port -> out_port, OCh signal set
    CLIENT_INGRESS   CLIENT in_port -> LINE out_port
    CLIENT_EGRESS    LINE in_port -> CLIENT out_port
"""

from enum import Enum

from odtn.lib.errors import FormatError, ParameterError


class Frequency:
    """Frequency in Hz."""

    def __init__(self, hz):
        self.hz = int(hz)

    @classmethod
    def of_mhz(cls, value):
        return cls(round(value * 1_000_000))

    @classmethod
    def of_ghz(cls, value):
        return cls(round(value * 1_000_000_000))

    @classmethod
    def of_thz(cls, value):
        return cls(round(value * 1_000_000_000_000))

    def as_mhz(self):
        return self.hz / 1_000_000

    def as_ghz(self):
        return self.hz / 1_000_000_000

    def as_thz(self):
        return self.hz / 1_000_000_000_000

    def __add__(self, other):
        return Frequency(self.hz + other.hz)

    def __mul__(self, n):
        return Frequency(self.hz * n)

    def __eq__(self, other):
        if not isinstance(other, Frequency):
            return NotImplemented
        return self.hz == other.hz

    def __hash__(self):
        return hash(self.hz)

    def __repr__(self):
        return f"Frequency({self.as_thz()} THz)"


# ITU-T G.694.1 anchor frequency
CENTER_FREQUENCY = Frequency.of_thz(193.1)


class OchSignal:
    """DWDM OCh signal. The central frequency is the anchor frequency plus
    spacing_multiplier times channel_spacing.

    Args:
        spacing_multiplier (int): Channel offset from the anchor frequency.
        channel_spacing (Frequency): Grid spacing. 50GHz by default.
        slot_granularity (int): Width in 12.5GHz slots.
    """

    def __init__(self, spacing_multiplier, channel_spacing=None, slot_granularity=4):
        self.spacing_multiplier = spacing_multiplier
        self.channel_spacing = channel_spacing or Frequency.of_ghz(50)
        self.slot_granularity = slot_granularity

    @property
    def central_frequency(self):
        return CENTER_FREQUENCY + self.channel_spacing * self.spacing_multiplier

    @classmethod
    def of_frequency(cls, frequency, channel_spacing=None):
        channel_spacing = channel_spacing or Frequency.of_ghz(50)
        offset = frequency.hz - CENTER_FREQUENCY.hz
        if offset % channel_spacing.hz != 0:
            raise ParameterError(
                f"{frequency} is not on the {channel_spacing.as_ghz()}GHz grid"
            )
        return cls(offset // channel_spacing.hz, channel_spacing)

    def __eq__(self, other):
        if not isinstance(other, OchSignal):
            return NotImplemented
        return (
            self.spacing_multiplier == other.spacing_multiplier
            and self.channel_spacing == other.channel_spacing
            and self.slot_granularity == other.slot_granularity
        )

    def __hash__(self):
        return hash(
            (self.spacing_multiplier, self.channel_spacing, self.slot_granularity)
        )

    def __repr__(self):
        return (
            f"OchSignal(DWDM, {self.channel_spacing.as_ghz()}GHz, "
            f"{self.spacing_multiplier}, {self.slot_granularity})"
        )


class FlowRule:
    """Abstract connectivity request.

    Args:
        in_port (int): Port matched by the rule.
        out_port (int): Port the rule outputs to.
        och_signal (OchSignal): OCh signal set by the rule's actions, if any.
        priority (int): Rule priority.
    """

    def __init__(self, in_port, out_port, och_signal=None, priority=0):
        self.in_port = in_port
        self.out_port = out_port
        self.och_signal = och_signal
        self.priority = priority

    def _key(self):
        return (self.in_port, self.out_port, self.och_signal, self.priority)

    def __eq__(self, other):
        if not isinstance(other, FlowRule):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self):
        return hash(self._key())

    def __repr__(self):
        return (
            f"FlowRule(in_port={self.in_port}, out_port={self.out_port}, "
            f"och_signal={self.och_signal})"
        )


class FlowEntry:
    """A flow rule as reported back by the driver.

    No traffic statistics are available from the device, so the counters
    are always zero.
    """

    ADDED = "ADDED"

    def __init__(self, rule, state=ADDED, life=0, packet_count=0, byte_count=0):
        self.rule = rule
        self.state = state
        self.life = life
        self.packet_count = packet_count
        self.byte_count = byte_count

    def __eq__(self, other):
        if not isinstance(other, FlowEntry):
            return NotImplemented
        return self._key() == other._key()

    def _key(self):
        return (self.rule, self.state, self.life, self.packet_count, self.byte_count)

    def __repr__(self):
        return f"FlowEntry({self.rule!r}, {self.state})"


class Role(Enum):
    LINE_INGRESS = "LINE_INGRESS"
    LINE_EGRESS = "LINE_EGRESS"
    CLIENT_INGRESS = "CLIENT_INGRESS"
    CLIENT_EGRESS = "CLIENT_EGRESS"


class Classification:
    role = None

    def __init__(self, rule):
        self.rule = rule

    @property
    def connection_name(self):
        return f"{self.role.value}-{self.rule.in_port}-{self.rule.out_port}"

    @property
    def is_line(self):
        return isinstance(self, LineClassification)

    def _fields(self):
        return ()

    def __eq__(self, other):
        if type(self) != type(other):
            return NotImplemented
        return self.rule == other.rule and self._fields() == other._fields()

    def __hash__(self):
        return hash((type(self), self.rule, self._fields()))

    def __repr__(self):
        return f"{type(self).__name__}{self._fields()}"


class LineClassification(Classification):
    def __init__(self, rule, line_port, central_frequency):
        super().__init__(rule)
        self.line_port = line_port
        self.central_frequency = central_frequency

    def _fields(self):
        return (self.line_port, self.central_frequency)


class ClientClassification(Classification):
    def __init__(self, rule, client_port, line_port):
        super().__init__(rule)
        self.client_port = client_port
        self.line_port = line_port

    def _fields(self):
        return (self.client_port, self.line_port)


class LineIngress(LineClassification):
    role = Role.LINE_INGRESS


class LineEgress(LineClassification):
    role = Role.LINE_EGRESS


class ClientIngress(ClientClassification):
    role = Role.CLIENT_INGRESS


class ClientEgress(ClientClassification):
    role = Role.CLIENT_EGRESS


def central_frequency(rule):
    if rule.och_signal is None:
        raise ParameterError(f"no central frequency in {rule}")
    frequency = rule.och_signal.central_frequency
    if frequency.hz <= 0:
        raise ParameterError(f"invalid central frequency {frequency} in {rule}")
    return frequency


def classify(rule, line_ports):
    """Classify a flow rule into one of the four directional roles.

    Args:
        rule (FlowRule): Rule to classify.
        line_ports (set of int): Line port numbers of the device.

    Returns:
        Classification: LineIngress, LineEgress, ClientIngress or ClientEgress.

    Raises:
        FormatError: Neither port of the rule is a line port.
        ParameterError: A line side rule has no valid central frequency.
    """
    in_line = rule.in_port in line_ports
    out_line = rule.out_port in line_ports

    if not in_line and not out_line:
        raise FormatError(f"{rule} does not reference any line port of the device")

    if rule.och_signal is not None:
        frequency = central_frequency(rule)
        if out_line:
            return LineIngress(rule, rule.out_port, frequency)
        return LineEgress(rule, rule.in_port, frequency)

    if in_line and out_line:
        raise ParameterError(f"line side rule {rule} has no central frequency")
    if out_line:
        return ClientIngress(rule, rule.in_port, rule.out_port)
    return ClientEgress(rule, rule.out_port, rule.in_port)

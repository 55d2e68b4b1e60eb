"""Mapping between Fujitsu T600 component names and port numbers.

Component names have the format ``{prefix}{shelf}/{slot}/0/{letter}{index}``.

- shelf: 1 or 2
- slot: 1 or 2
- letter: ``E`` for line ports, ``C`` for client ports
- index: 1 to 99

Line ports map to a 5 digit number ``{shelf}{slot}00{index % 10}`` and client
ports to a 4 digit number ``{shelf}{slot}{index:02}``.
E.g. 1/1/0/E1 -> 11001, 1/2/0/E2 -> 12002, 1/1/0/C1 -> 1101, 1/2/0/C11 -> 1211

Only the last digit of a line index survives the mapping.
"""

import re

from odtn.lib.errors import FormatError
from .util import PREFIX_OPTICAL_CHANNEL, PREFIX_TRANSCEIVER

LINE_LETTER = "E"
CLIENT_LETTER = "C"

_NAME_RE = re.compile(
    r"^(?:port-|otsi-|transceiver-)?([12])/([12])/0/([A-Za-z])(\d{1,2})$"
)


def parse_name(name):
    """Split a component name into its structural fields.

    Args:
        name (str): Component name with or without a prefix. e.g. port-1/2/0/C11

    Returns:
        tuple: (shelf, slot, letter, index)

    Raises:
        FormatError: The name does not follow the naming grammar.
    """
    if len(name.split("/")) != 4:
        raise FormatError(f"incorrect naming format: {name}")
    m = _NAME_RE.match(name)
    if not m:
        raise FormatError(f"incorrect naming format: {name}")
    shelf, slot, letter, index = m.groups()
    if letter not in (LINE_LETTER, CLIENT_LETTER):
        raise FormatError(f"port letter must be 'E' or 'C': {name}")
    if int(index) == 0:
        raise FormatError(f"port index must be between 1 and 99: {name}")
    return int(shelf), int(slot), letter, int(index)


def encode(name):
    shelf, slot, letter, index = parse_name(name)
    if letter == LINE_LETTER:
        number = f"{shelf}{slot}00{index % 10}"
    else:
        number = f"{shelf}{slot}{index:02}"
    return int(number)


def decode(port_number):
    number = str(port_number)
    if not number.isdigit() or len(number) not in (4, 5):
        raise FormatError(f"invalid port number: {port_number}")
    shelf = number[0]
    slot = number[1]
    if shelf not in "12" or slot not in "12":
        raise FormatError(f"shelf and slot must be 1 or 2: {port_number}")
    if len(number) == 5:
        if number[2:4] != "00":
            raise FormatError(f"invalid line port number: {port_number}")
        return f"{PREFIX_OPTICAL_CHANNEL}{shelf}/{slot}/0/{LINE_LETTER}{number[4]}"
    index = int(number[2:4])
    if index == 0:
        raise FormatError(f"client port index must be between 1 and 99: {port_number}")
    return f"{PREFIX_TRANSCEIVER}{shelf}/{slot}/0/{CLIENT_LETTER}{index}"


def client_suffix(name):
    """Digits following the client port letter. e.g. transceiver-1/1/0/C3 -> 3"""
    _, _, letter, _ = parse_name(name)
    if letter != CLIENT_LETTER:
        raise FormatError(f"not a client port: {name}")
    return name.rsplit(CLIENT_LETTER, 1)[1]

"""main() function for the Fujitsu T600 driver."""

import logging
import argparse
import json
import sys
from odtn.lib.connector.netconf import NetconfController
from odtn.lib.device import DeviceInventory
from odtn.lib.errors import Error, ParameterError
from .ber import BitErrorRate
from .cache import InMemoryConnectionCache
from .channel import ChannelProvisioner, DEFAULT_SETTLE_DELAY
from .discovery import TerminalDeviceDiscovery
from .flowrule import FlowRule, Frequency, OchSignal
from .power import Direction, PowerConfig
from .util import DEFAULT_LINE_CHANNEL_INDEX


logger = logging.getLogger(__name__)

DEFAULT_NETCONF_PORT = 830


def load_config(config_file):
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            config = json.loads(f.read())
    except json.decoder.JSONDecodeError as e:
        logger.error("Invalid configuration file %s.", config_file)
        raise e
    except FileNotFoundError as e:
        logger.error("Configuration file %s is not found.", config_file)
        raise e

    device = dict(config.get("device", {}))
    if "host" not in device:
        raise ParameterError(f"no device host in {config_file}")
    device.setdefault("port", DEFAULT_NETCONF_PORT)

    line_channel_index = dict(DEFAULT_LINE_CHANNEL_INDEX)
    try:
        for name, index in config.get("line-channel-index", {}).items():
            line_channel_index[name] = int(index)
        settle_delay = float(config.get("settle-delay", DEFAULT_SETTLE_DELAY))
    except (AttributeError, TypeError, ValueError) as e:
        raise ParameterError(f"invalid configuration in {config_file}: {e}") from e

    return {
        "device-id": config.get("device-id", f"netconf:{device['host']}:{device['port']}"),
        "device": device,
        "line-channel-index": line_channel_index,
        "settle-delay": settle_delay,
    }


def parse_rule(rule):
    try:
        in_port = int(rule["in-port"])
        out_port = int(rule["out-port"])
        och_signal = None
        if "och-signal" in rule:
            och = rule["och-signal"]
            och_signal = OchSignal(
                int(och["spacing-multiplier"]),
                Frequency.of_ghz(float(och.get("channel-spacing-ghz", 50))),
                int(och.get("slot-granularity", 4)),
            )
        elif "frequency-thz" in rule:
            och_signal = OchSignal.of_frequency(
                Frequency.of_thz(float(rule["frequency-thz"]))
            )
    except (KeyError, TypeError, ValueError) as e:
        raise ParameterError(f"invalid flow rule {rule}: {e}") from e
    return FlowRule(in_port, out_port, och_signal)


def load_rules(rules_file):
    try:
        with open(rules_file, "r", encoding="utf-8") as f:
            rules = json.loads(f.read())
    except json.decoder.JSONDecodeError as e:
        logger.error("Invalid rules file %s.", rules_file)
        raise e
    except FileNotFoundError as e:
        logger.error("Rules file %s is not found.", rules_file)
        raise e
    if not isinstance(rules, list):
        raise ParameterError(f"{rules_file} must contain a list of flow rules")
    return [parse_rule(r) for r in rules]


def rule_to_dict(rule):
    v = {"in-port": rule.in_port, "out-port": rule.out_port}
    if rule.och_signal is not None:
        v["frequency-thz"] = rule.och_signal.central_frequency.as_thz()
    return v


def run(args, config, controller):
    device_id = config["device-id"]
    inventory = DeviceInventory()
    discovery = TerminalDeviceDiscovery(device_id, controller, inventory)

    if args.command == "discover":
        details = discovery.discover_device_details()
        ports = discovery.discover_port_details()
        return {
            "device": details.to_dict(),
            "ports": [{"number": p.number, **p.annotations} for p in ports],
        }

    if args.command == "ber":
        ber = BitErrorRate(device_id, controller, config["line-channel-index"])
        return {
            "port": args.port,
            "pre-fec-ber": ber.get_pre_fec_ber(args.port),
            "post-fec-ber": ber.get_post_fec_ber(args.port),
        }

    if args.command == "power":
        power = PowerConfig(device_id, controller)
        c = Direction.INGRESS
        return {
            "port": args.port,
            "target-power": power.get_target_power(args.port, c),
            "current-power": power.current_power(args.port, c),
            "current-input-power": power.current_input_power(args.port, c),
            "target-power-range": list(power.get_target_power_range(args.port, c)),
            "input-power-range": list(power.get_input_power_range(args.port, c)),
        }

    rules = load_rules(args.rules)
    discovery.discover_port_details()
    provisioner = ChannelProvisioner(
        device_id,
        controller,
        inventory,
        InMemoryConnectionCache(),
        line_channel_index=config["line-channel-index"],
        settle_delay=config["settle-delay"],
    )
    if args.command == "apply":
        done = provisioner.apply_flow_rules(rules)
    else:
        done = provisioner.remove_flow_rules(rules)
    return {
        "requested": len(rules),
        args.command: [rule_to_dict(r) for r in done],
    }


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="enable detailed output"
    )
    parser.add_argument(
        "config_file", metavar="config-file", help="path to the device config file"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("discover", help="show device and port details")
    for command in ["apply", "remove"]:
        p = subparsers.add_parser(command, help=f"{command} flow rules")
        p.add_argument("rules", help="path to a JSON list of flow rules")
    for command in ["ber", "power"]:
        p = subparsers.add_parser(command, help=f"show {command} of a port")
        p.add_argument("port", type=int, help="port number")
    args = parser.parse_args()

    fmt = "%(levelname)s %(module)s %(funcName)s l.%(lineno)d | %(message)s"
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format=fmt)
        for noisy in [
            "ncclient.transport.ssh",
            "ncclient.transport.session",
            "ncclient.operations.rpc",
        ]:
            l = logging.getLogger(noisy)
            l.setLevel(logging.INFO)
    else:
        logging.basicConfig(level=logging.INFO, format=fmt)

    config = load_config(args.config_file)

    controller = NetconfController()
    device_id = config["device-id"]
    try:
        controller.connect(device_id, **config["device"])
        result = run(args, config, controller)
    except Error as e:
        logger.error(f"{args.command} failed: {e}")
        sys.exit(1)
    finally:
        controller.disconnect(device_id)

    print(json.dumps(result, indent=2))


if __name__ == "__main__":
    main()

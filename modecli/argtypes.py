"""
Argument types for command definitions.

Each ``arg_*`` factory returns a grammar node carrying an id (the name
handlers use with ``parse.get_str(id)``) and a help string shown during
completion:

    registry.defun_sub(set_grp, "set_mtu", "mtu size", "Set MTU",
                       arg_mtu("size", "MTU in bytes"))

The regular expressions only check the shape of a token. Handlers that
need the value use the ``parse_*`` helpers below, which validate
properly and raise ValueError on bad input.
"""

from __future__ import annotations

import ipaddress
import re
from typing import Optional, Union

from modecli.grammar import AnyToken, Int, Node, Or, Re, Str


RE_NAME = r"[a-zA-Z][a-zA-Z0-9_-]*"
RE_HOSTNAME = r"[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
RE_IFNAME = r"[a-zA-Z][a-zA-Z0-9_.-]*"
RE_FILENAME = r"[^ ]+"
RE_PATH = r"[^ ]+"
RE_IPV4 = r"[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}"
RE_IPV4_PREFIX = r"[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}/[0-9]{1,2}"
RE_IPV6 = r"[0-9a-fA-F:.]+"
RE_IPV6_PREFIX = r"[0-9a-fA-F:.]+/[0-9]{1,3}"
RE_MAC = r"[0-9a-fA-F]{1,2}(:[0-9a-fA-F]{1,2}){5}"
RE_MAC_DASH = r"[0-9a-fA-F]{1,2}(-[0-9a-fA-F]{1,2}){5}"
RE_MAC_ANY = r"[0-9a-fA-F]{1,2}([-:][0-9a-fA-F]{1,2}){5}"
RE_HEX = r"(0[xX])?[0-9a-fA-F]+"
RE_DECIMAL = r"[0-9]+"
RE_IDENTIFIER = r"[a-zA-Z_][a-zA-Z0-9_]*"

_TRUE_WORDS = {"on", "enable", "yes", "true", "1"}
_FALSE_WORDS = {"off", "disable", "no", "false", "0"}


# ─── Generic Builders ────────────────────────────────────────────────


def arg_re(node_id: str, pattern: str, help: Optional[str] = None) -> Node:
    return Re(node_id, pattern).with_help(help)


def arg_range(node_id: str, minimum: Optional[int], maximum: Optional[int],
              help: Optional[str] = None, base: int = 10) -> Node:
    return Int(node_id, minimum, maximum, base).with_help(help)


def arg_choice(node_id: str, choices, help: Optional[str] = None) -> Node:
    return Or(node_id, *(Str(None, choice) for choice in choices)).with_help(help)


# ─── Text and Addresses ──────────────────────────────────────────────


def arg_name(node_id, help=None):
    return arg_re(node_id, RE_NAME, help)


def arg_hostname(node_id, help=None):
    return arg_re(node_id, RE_HOSTNAME, help)


def arg_ifname(node_id, help=None):
    return arg_re(node_id, RE_IFNAME, help)


def arg_filename(node_id, help=None):
    return arg_re(node_id, RE_FILENAME, help)


def arg_path(node_id, help=None):
    return arg_re(node_id, RE_PATH, help)


def arg_ipv4(node_id, help=None):
    return arg_re(node_id, RE_IPV4, help)


def arg_ipv4_prefix(node_id, help=None):
    return arg_re(node_id, RE_IPV4_PREFIX, help)


def arg_ipv6(node_id, help=None):
    return arg_re(node_id, RE_IPV6, help)


def arg_ipv6_prefix(node_id, help=None):
    return arg_re(node_id, RE_IPV6_PREFIX, help)


def arg_mac(node_id, help=None):
    return arg_re(node_id, RE_MAC, help)


def arg_mac_any(node_id, help=None):
    return arg_re(node_id, RE_MAC_ANY, help)


def arg_hex(node_id, help=None):
    return arg_re(node_id, RE_HEX, help)


def arg_any(node_id, help=None):
    return AnyToken(node_id).with_help(help)


# ─── Numbers ─────────────────────────────────────────────────────────


def arg_uint(node_id, maximum, help=None):
    return arg_range(node_id, 0, maximum, help)


def arg_int(node_id, minimum, maximum, help=None):
    return arg_range(node_id, minimum, maximum, help)


def arg_count(node_id, maximum, help=None):
    return arg_range(node_id, 1, maximum, help)


def arg_port(node_id, help=None):
    return arg_range(node_id, 1, 65535, help)


def arg_port_any(node_id, help=None):
    return arg_range(node_id, 0, 65535, help)


def arg_port_count(node_id, help=None):
    return arg_range(node_id, 1, 256, help)


def arg_vlan(node_id, help=None):
    return arg_range(node_id, 1, 4094, help)


def arg_vlan_any(node_id, help=None):
    return arg_range(node_id, 0, 4095, help)


def arg_priority(node_id, help=None):
    return arg_range(node_id, 0, 7, help)


def arg_dscp(node_id, help=None):
    return arg_range(node_id, 0, 63, help)


def arg_mtu(node_id, help=None):
    return arg_range(node_id, 64, 65535, help)


def arg_percent(node_id, help=None):
    return arg_range(node_id, 0, 100, help)


def arg_timeout(node_id, maximum, help=None):
    return arg_range(node_id, 1, maximum, help)


def arg_index(node_id, maximum, help=None):
    return arg_range(node_id, 0, maximum, help)


def arg_slot(node_id, maximum, help=None):
    return arg_range(node_id, 1, maximum, help)


# ─── Keyword Choices ─────────────────────────────────────────────────


def arg_onoff(node_id, help=None):
    return arg_choice(node_id, ("on", "off"), help)


def arg_enable(node_id, help=None):
    return arg_choice(node_id, ("enable", "disable"), help)


def arg_yesno(node_id, help=None):
    return arg_choice(node_id, ("yes", "no"), help)


def arg_bool(node_id, help=None):
    return arg_choice(node_id, ("true", "false"), help)


def arg_doc_format(node_id, help=None):
    return arg_choice(node_id, ("md", "rst", "txt"), help)


# ─── Value Helpers ───────────────────────────────────────────────────


def parse_ipv4(text: str) -> ipaddress.IPv4Address:
    """Parse a dotted-quad address. Raises ValueError if malformed."""
    return ipaddress.IPv4Address(text)


def parse_ipv4_prefix(text: str) -> tuple[ipaddress.IPv4Address, int]:
    """Parse ``a.b.c.d/len`` into (address, prefix length).

    Host bits may be set, so ``10.1.2.3/8`` is accepted as is.
    """
    address, sep, length = text.partition("/")
    if not sep or not re.fullmatch(RE_DECIMAL, length):
        raise ValueError(f"Invalid IPv4 prefix: {text!r}")
    prefix_len = int(length)
    if prefix_len > 32:
        raise ValueError(f"Invalid IPv4 prefix length: {prefix_len}")
    return parse_ipv4(address), prefix_len


def parse_ipv6(text: str) -> ipaddress.IPv6Address:
    return ipaddress.IPv6Address(text)


def parse_mac(text: str) -> bytes:
    """Parse a MAC address written with ``:`` or ``-`` separators."""
    if not (re.fullmatch(RE_MAC, text) or re.fullmatch(RE_MAC_DASH, text)):
        raise ValueError(f"Invalid MAC address: {text!r}")
    return bytes(int(part, 16) for part in re.split(r"[-:]", text))


def parse_bool(text: str) -> bool:
    word = text.lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise ValueError(f"Invalid boolean value: {text!r}")


def format_ipv4(address: Union[int, str, ipaddress.IPv4Address]) -> str:
    return str(ipaddress.IPv4Address(address))


def format_mac(mac: bytes) -> str:
    if len(mac) != 6:
        raise ValueError(f"MAC address must be 6 bytes, got {len(mac)}")
    return ":".join(f"{octet:02x}" for octet in mac)

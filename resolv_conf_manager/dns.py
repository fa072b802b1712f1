"""
Address and domain helpers used while reading resolv.conf.

Parsing of single server specifications and search-domain tokens.
"""

import ipaddress
import re
import socket
from typing import NamedTuple, Optional, Union

from .errors import AddressParseError, DomainParseError

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

ROOT_DOMAIN = "."

# RFC 1035 limits, textual form without the trailing dot
MAX_DOMAIN_LENGTH = 253
MAX_LABEL_LENGTH = 63

_LABEL_RE = re.compile(r"^[A-Za-z0-9_](?:[A-Za-z0-9_-]*[A-Za-z0-9_])?$")


class ServerAddress(NamedTuple):
    """Parsed DNS server specification."""

    address: IPAddress
    ifindex: Optional[int] = None

    @property
    def family(self) -> int:
        return socket.AF_INET if self.address.version == 4 else socket.AF_INET6


def _parse_zone(text: str, zone: str) -> int:
    if zone.isdigit():
        ifindex = int(zone)
        if ifindex <= 0:
            raise AddressParseError(text, f"invalid interface index {zone}")
        return ifindex

    try:
        return socket.if_nametoindex(zone)
    except OSError as e:
        raise AddressParseError(text, f"unknown interface '{zone}'") from e


def parse_server_address(text: str) -> ServerAddress:
    """
    Parse a nameserver argument into an address.

    Accepts IPv4, IPv6 and IPv6 with a zone suffix (``fe80::1%2`` or
    ``fe80::1%eth0``).

    Raises:
        AddressParseError: If the text is not a usable address
    """
    spec = text.strip()
    if not spec:
        raise AddressParseError(text, "empty address")

    host, sep, zone = spec.partition("%")
    try:
        address = ipaddress.ip_address(host)
    except ValueError as e:
        raise AddressParseError(text, str(e)) from e

    if not sep:
        return ServerAddress(address)

    if address.version != 6 or not zone:
        raise AddressParseError(text, "zone index only valid on IPv6 addresses")

    return ServerAddress(address, _parse_zone(text, zone))


def parse_domain_token(text: str) -> str:
    """
    Normalize and check one search-domain token.

    The trailing dot is dropped and the name is lowercased. A lone ``.``
    is returned as ``ROOT_DOMAIN``.

    Raises:
        DomainParseError: If the token is not a valid domain name
    """
    token = text.strip()
    if len(token) >= 2 and token[0] == token[-1] and token[0] in "\"'":
        token = token[1:-1]

    if not token:
        raise DomainParseError(text, "empty domain")

    if token == ROOT_DOMAIN:
        return ROOT_DOMAIN

    name = token[:-1] if token.endswith(".") else token
    if len(name) > MAX_DOMAIN_LENGTH:
        raise DomainParseError(text, f"name longer than {MAX_DOMAIN_LENGTH} characters")

    for label in name.split("."):
        if not label:
            raise DomainParseError(text, "empty label")
        if len(label) > MAX_LABEL_LENGTH:
            raise DomainParseError(text, f"label '{label}' longer than {MAX_LABEL_LENGTH} characters")
        if not _LABEL_RE.match(label):
            raise DomainParseError(text, f"invalid characters in label '{label}'")

    return name.lower()

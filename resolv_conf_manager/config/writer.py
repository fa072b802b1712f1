"""
resolv.conf writer.

Serializes DNS servers and search domains into resolv.conf(5) format,
honouring the resolver's limits on nameservers and search domains.
"""

import io
import logging
from typing import Sequence, TextIO

from ..models import DnsServerRecord
from ..settings import ResolvConfLimits

logger = logging.getLogger(__name__)

HEADER = (
    "# This file is managed by resolv-conf-manager. Do not edit.\n"
    "#\n"
    "# Third party programs must not access this file directly, but\n"
    "# only through the symlink at /etc/resolv.conf. To manage\n"
    "# resolv.conf(5) in a different way, replace the symlink by a\n"
    "# static file or a different symlink.\n"
    "\n"
)

NO_SERVERS_COMMENT = "# No DNS servers known.\n"
TOO_MANY_SERVERS_COMMENT = "# Too many DNS servers configured, the following entries may be ignored.\n"
TOO_MANY_DOMAINS_COMMENT = " # Too many search domains configured, remaining ones ignored."
DOMAINS_TOO_LONG_COMMENT = " # Total length of all search domains is too long, remaining ones ignored."


def write_servers(f: TextIO, servers: Sequence[DnsServerRecord], limits: ResolvConfLimits):
    if not servers:
        f.write(NO_SERVERS_COMMENT)
        return

    for count, server in enumerate(servers):
        if count == limits.max_servers:
            f.write(TOO_MANY_SERVERS_COMMENT)
            logger.debug(f"Omitting {len(servers) - count} DNS servers beyond the first {count}")
            break
        f.write(f"nameserver {server.server_string}\n")


def write_search_domains(f: TextIO, domains: Sequence[str], limits: ResolvConfLimits):
    if not domains:
        return

    count = 0
    length = 0
    truncated = False
    warned_count = False
    warned_length = False

    f.write("search")
    for domain in domains:
        too_many = count >= limits.max_search_domains
        too_long = length + len(domain) > limits.max_search_length

        if truncated or too_many or too_long:
            truncated = True
            if too_many and not warned_count:
                f.write(TOO_MANY_DOMAINS_COMMENT)
                warned_count = True
            if too_long and not warned_length:
                f.write(DOMAINS_TOO_LONG_COMMENT)
                warned_length = True
            continue

        length += len(domain)
        count += 1
        f.write(f" {domain}")
    f.write("\n")


def write_resolv_conf_contents(
    f: TextIO,
    servers: Sequence[DnsServerRecord],
    domains: Sequence[str],
    limits: ResolvConfLimits
):
    """
    Write a complete resolv.conf to ``f`` and flush it.

    Args:
        f: Writable text stream
        servers: Deduplicated servers in publishing order
        domains: Deduplicated search domains in publishing order
        limits: Resolver limits

    Raises:
        OSError: If writing or flushing fails
    """
    f.write(HEADER)
    write_servers(f, servers, limits)
    write_search_domains(f, domains, limits)
    f.flush()


def render_resolv_conf(
    servers: Sequence[DnsServerRecord],
    domains: Sequence[str],
    limits: ResolvConfLimits
) -> str:
    """Return the resolv.conf text without touching the filesystem."""
    buf = io.StringIO()
    write_resolv_conf_contents(buf, servers, domains, limits)
    return buf.getvalue()

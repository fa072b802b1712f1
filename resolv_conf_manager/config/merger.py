"""
Mark-and-sweep merger for resolv.conf contents.

Reconciles the directives of the source file with the server and search
domain collections:

1. mark every record that came from the source file
2. unmark (or add) every record the file still lists
3. drop what is still marked

The merger only ever sees the collections of records read from resolv.conf;
records from other sources live in their own collections and are never
touched.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List

from ..dns import ROOT_DOMAIN, parse_domain_token, parse_server_address
from ..errors import CapacityExceededError, ParseError
from ..models import DnsServerRecord, DnsServerSource, SearchDomainRecord
from ..registry import DnsServerRegistry, SearchDomainRegistry
from ..settings import ResolvConfLimits
from .parser import Directive, DirectiveKind, parse_lines

logger = logging.getLogger(__name__)

SOURCE = DnsServerSource.SYSTEM


@dataclass
class MergeResult:
    """Summary of one merge cycle."""
    added_servers: List[str] = field(default_factory=list)
    removed_servers: List[str] = field(default_factory=list)
    added_domains: List[str] = field(default_factory=list)
    removed_domains: List[str] = field(default_factory=list)
    parse_errors: List[ParseError] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added_servers or self.removed_servers
                    or self.added_domains or self.removed_domains)


class ResolvConfMerger:
    """Merges resolv.conf directives into the resolv.conf collections."""

    def __init__(
        self,
        servers: DnsServerRegistry,
        domains: SearchDomainRegistry,
        limits: ResolvConfLimits
    ):
        """
        Initialize merger.

        Args:
            servers: DNS servers read from resolv.conf
            domains: Search domains read from resolv.conf
            limits: Caps on how many entries the source file may contribute

        Raises:
            ValueError: If a collection holds records of another source
        """
        if servers.source != SOURCE or domains.source != SOURCE:
            raise ValueError("merger only manages records read from resolv.conf")
        self.servers = servers
        self.domains = domains
        self.limits = limits

    def mark_all(self):
        """Start a cycle: mark every record read from the source file."""
        self.servers.mark_all()
        self.domains.mark_all()

    def add_server(self, text: str, result: MergeResult):
        """
        Add or reaffirm one DNS server.

        Raises:
            ParseError: If the address is invalid or the collection is full
        """
        parsed = parse_server_address(text)
        record = DnsServerRecord.from_address(parsed, SOURCE)

        existing = self.servers.get(record.key)
        if existing is not None:
            self.servers.move_back_and_unmark(existing)
            return

        if len(self.servers) >= self.limits.max_managed_servers:
            raise CapacityExceededError(text, self.limits.max_managed_servers)

        self.servers.add(record)
        result.added_servers.append(record.server_string)

    def add_search_domain(self, text: str, result: MergeResult):
        """
        Add or reaffirm one search domain.

        Raises:
            ParseError: If the domain is invalid or the collection is full
        """
        name = parse_domain_token(text)
        if name == ROOT_DOMAIN:
            return

        existing = self.domains.get(name)
        if existing is not None:
            self.domains.move_back_and_unmark(existing)
            return

        if len(self.domains) >= self.limits.max_managed_search_domains:
            raise CapacityExceededError(text, self.limits.max_managed_search_domains)

        self.domains.add(SearchDomainRecord(name=name, source=SOURCE))
        result.added_domains.append(name)

    def apply(self, directive: Directive, result: MergeResult):
        """Apply one directive; argument errors are logged and skipped."""
        if directive.kind == DirectiveKind.ADD_SERVER:
            try:
                self.add_server(directive.argument, result)
            except ParseError as e:
                logger.warning(f"Failed to parse DNS server address '{directive.argument}' "
                               f"(line {directive.line_number}), ignoring: {e.message}")
                result.parse_errors.append(e)

        elif directive.kind == DirectiveKind.ADD_SEARCH_LIST:
            for token in directive.argument.split():
                try:
                    self.add_search_domain(token, result)
                except ParseError as e:
                    logger.warning(f"Failed to add search domain '{token}' "
                                   f"(line {directive.line_number}), ignoring: {e.message}")
                    result.parse_errors.append(e)

    def sweep(self, result: MergeResult):
        """End a successful cycle: drop records the file no longer lists."""
        result.removed_servers.extend(s.server_string for s in self.servers.unlink_marked())
        result.removed_domains.extend(d.name for d in self.domains.unlink_marked())

    def unlink_all(self):
        """Drop every record read from the source file, marked or not."""
        servers = self.servers.clear()
        domains = self.domains.clear()
        if servers or domains:
            logger.info(f"Dropped {len(servers)} DNS servers and {len(domains)} search domains "
                        f"read from resolv.conf")

    def merge(self, lines: Iterable[str]) -> MergeResult:
        """
        Run a full mark-and-sweep cycle over ``lines``.

        Errors raised while iterating ``lines`` (I/O, decoding) propagate;
        the caller is expected to call ``unlink_all()`` in that case.

        Returns:
            MergeResult describing what changed
        """
        result = MergeResult()
        self.mark_all()

        for directive in parse_lines(lines):
            self.apply(directive, result)

        self.sweep(result)
        return result

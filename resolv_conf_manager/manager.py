"""
Reconciliation context for resolv-conf-manager.

ResolvConfManager owns one collection per source (servers and search domains
read from resolv.conf, those registered for links, and the fallback servers),
the current server selection and the reconciliation state. It reads the
system resolv.conf into the resolv.conf collections and publishes the
combined view as the managed copy.
"""

import logging
import os
from typing import Callable, List, Optional, Tuple

from .config.change_detector import ChangeDetector, ReadOutcome
from .config.merger import ResolvConfMerger
from .config.publisher import publish_atomically
from .config.writer import render_resolv_conf
from .dns import parse_domain_token, parse_server_address
from .errors import ResolvConfReadError, ResolvConfWriteError
from .models import DnsServerRecord, DnsServerSource, SearchDomainRecord
from .registry import DnsServerRegistry, SearchDomainRegistry
from .settings import ManagerSettings
from .state import ReconciliationState

logger = logging.getLogger(__name__)


class ResolvConfManager:
    """
    Single owner of the resolver configuration.

    Not thread-safe; callers serialize read_resolv_conf() and
    write_resolv_conf().
    """

    def __init__(
        self,
        settings: Optional[ManagerSettings] = None,
        flush_cache: Optional[Callable[[], None]] = None
    ):
        """
        Initialize manager.

        Args:
            settings: Paths, limits and policy (defaults when omitted)
            flush_cache: Called after every successful read of the source file
        """
        self.settings = settings or ManagerSettings()
        self.limits = self.settings.limits
        self.source_path = self.settings.paths.source
        self.managed_path = self.settings.paths.managed
        self.flush_cache = flush_cache

        self.state = ReconciliationState(read_resolv_conf=self.settings.resolver.read_resolv_conf)

        # Read from resolv.conf, owned by the merger
        self.dns_servers = DnsServerRegistry(DnsServerSource.SYSTEM)
        self.search_domains = SearchDomainRegistry(DnsServerSource.SYSTEM)

        self.link_dns_servers = DnsServerRegistry(DnsServerSource.LINK)
        self.link_search_domains = SearchDomainRegistry(DnsServerSource.LINK)
        self.fallback_dns_servers = DnsServerRegistry(DnsServerSource.FALLBACK)

        self.current_dns_server: Optional[DnsServerRecord] = None
        self._published: Optional[Tuple[str, Optional[Tuple[int, int, int]]]] = None

        self.detector = ChangeDetector(self.source_path, self.managed_path, self.state)
        self.merger = ResolvConfMerger(self.dns_servers, self.search_domains, self.limits)

        for spec in self.settings.resolver.fallback_dns:
            record = DnsServerRecord.from_address(parse_server_address(spec), DnsServerSource.FALLBACK)
            if record.key not in self.fallback_dns_servers:
                self.fallback_dns_servers.add(record)

    # Servers and domains from other sources

    def add_dns_server(self, spec: str, source: DnsServerSource = DnsServerSource.LINK) -> DnsServerRecord:
        """
        Register a DNS server learned from somewhere other than resolv.conf.

        The same address may also be listed in resolv.conf; the two records
        are kept apart and merged only when publishing.

        Raises:
            AddressParseError: If ``spec`` is not a valid address
            ValueError: If ``source`` is SYSTEM or FALLBACK
        """
        if source != DnsServerSource.LINK:
            raise ValueError(f"{source.value} servers are not added directly")

        record = DnsServerRecord.from_address(parse_server_address(spec), source)
        existing = self.link_dns_servers.get(record.key)
        if existing is not None:
            return existing
        return self.link_dns_servers.add(record)

    def remove_dns_server(self, spec: str) -> Optional[DnsServerRecord]:
        """Forget a LINK server. Servers read from resolv.conf are left alone."""
        key = DnsServerRecord.from_address(parse_server_address(spec), DnsServerSource.LINK).key
        record = self.link_dns_servers.remove(key)
        if record is not None and self.current_dns_server is record:
            self.select_first_dns_server()
        return record

    def add_search_domain(self, name: str, source: DnsServerSource = DnsServerSource.LINK) -> SearchDomainRecord:
        """
        Register a search domain learned from somewhere other than resolv.conf.

        Raises:
            DomainParseError: If ``name`` is not a valid domain
            ValueError: If ``source`` is not LINK
        """
        if source != DnsServerSource.LINK:
            raise ValueError(f"{source.value} search domains are not added directly")

        normalized = parse_domain_token(name)
        existing = self.link_search_domains.get(normalized)
        if existing is not None:
            return existing
        return self.link_search_domains.add(SearchDomainRecord(name=normalized, source=source))

    def remove_search_domain(self, name: str) -> Optional[SearchDomainRecord]:
        """Forget a LINK search domain. Domains read from resolv.conf are left alone."""
        return self.link_search_domains.remove(parse_domain_token(name))

    def all_dns_servers(self) -> List[DnsServerRecord]:
        """Servers of every source except fallback, resolv.conf first."""
        return list(self.dns_servers) + list(self.link_dns_servers)

    def all_search_domains(self) -> List[SearchDomainRecord]:
        return list(self.search_domains) + list(self.link_search_domains)

    def set_dns_server(self, server: Optional[DnsServerRecord]):
        if server is self.current_dns_server:
            return
        if server is None:
            logger.info("No DNS server selected")
        else:
            logger.info(f"Switching to DNS server {server.server_string}")
        self.current_dns_server = server

    def select_first_dns_server(self):
        """Point the selection at the first server of resolv.conf, else of the links."""
        self.set_dns_server(self.dns_servers.first() or self.link_dns_servers.first())

    # Reading

    def _read_failed(self, error: ResolvConfReadError) -> ReadOutcome:
        logger.warning(error.message)
        self.merger.unlink_all()
        current = self.current_dns_server
        if current is not None and current.source == DnsServerSource.SYSTEM:
            self.select_first_dns_server()
        self.state.record_read_failure(error)
        return ReadOutcome.FAILED

    def read_resolv_conf(self) -> ReadOutcome:
        """
        Merge the system resolv.conf into the collections if it changed.

        Read failures are not raised: they drop every server and domain
        previously read from the file and return ``ReadOutcome.FAILED``. The
        file is tried again on the next call.

        Returns:
            ReadOutcome of this cycle
        """
        try:
            check = self.detector.check()
        except ResolvConfReadError as e:
            return self._read_failed(e)

        if not check.changed:
            return check.skip

        with check.handle as f:
            try:
                result = self.merger.merge(f)
            except OSError as e:
                return self._read_failed(ResolvConfReadError(str(self.source_path), e.strerror or str(e)))

        self.state.record_read(check.mtime_ns)

        if result.changed:
            logger.info(
                f"Read {self.source_path}: +{len(result.added_servers)}/-{len(result.removed_servers)} "
                f"DNS servers, +{len(result.added_domains)}/-{len(result.removed_domains)} search domains"
            )
        else:
            logger.debug(f"Read {self.source_path}: no changes")

        # resolv.conf editors (VPN clients in particular) put the preferred
        # server first; follow that instead of the previous selection
        self.select_first_dns_server()

        # Flushed even if nothing changed, an edit means the network changed
        if self.flush_cache is not None:
            self.flush_cache()

        return ReadOutcome.LOADED

    # Writing

    def compile_dns_servers(self) -> List[DnsServerRecord]:
        """
        Servers to publish: resolv.conf first, then links, deduplicated.

        The fallback servers are published only when neither source has any.
        """
        servers: List[DnsServerRecord] = []
        seen = set()

        for server in self.all_dns_servers() or list(self.fallback_dns_servers):
            if server.server_string in seen:
                continue
            seen.add(server.server_string)
            servers.append(server)

        return servers

    def compile_search_domains(self) -> List[str]:
        domains: List[str] = []
        for domain in self.all_search_domains():
            if domain.name not in domains:
                domains.append(domain.name)
        return domains

    def render(self) -> str:
        """Read the source file and return what would be published."""
        self.read_resolv_conf()
        return render_resolv_conf(self.compile_dns_servers(), self.compile_search_domains(), self.limits)

    def _managed_file_id(self) -> Optional[Tuple[int, int, int]]:
        try:
            st = os.stat(self.managed_path)
        except OSError:
            return None
        return (st.st_dev, st.st_ino, st.st_mtime_ns)

    def write_resolv_conf(self) -> bool:
        """
        Read the source file, then atomically publish the managed copy.

        Publishing is skipped when the content is the same as last time and
        the managed file has not been touched since.

        Returns:
            True if the managed file was replaced

        Raises:
            ResolvConfWriteError: If the managed file could not be replaced
        """
        self.read_resolv_conf()

        servers = self.compile_dns_servers()
        domains = self.compile_search_domains()
        content = render_resolv_conf(servers, domains, self.limits)

        if self._published is not None and self._published == (content, self._managed_file_id()):
            logger.debug(f"{self.managed_path} is up to date")
            return False

        try:
            publish_atomically(self.managed_path, lambda f: f.write(content))
        except ResolvConfWriteError as e:
            logger.error(e.message)
            self._published = None
            self.state.record_write(False, e)
            raise

        self._published = (content, self._managed_file_id())
        self.state.record_write(True)
        logger.info(f"Wrote {self.managed_path}: {len(servers)} DNS servers, {len(domains)} search domains")
        return True

    def to_dict(self) -> dict:
        """Collections and state for status output."""
        current = self.current_dns_server
        return {
            "source": str(self.source_path),
            "managed": str(self.managed_path),
            "current_dns_server": current.server_string if current else None,
            "dns_servers": [
                {"address": s.server_string, "source": s.source.value} for s in self.all_dns_servers()
            ],
            "fallback_dns_servers": [s.server_string for s in self.fallback_dns_servers],
            "search_domains": [
                {"name": d.name, "source": d.source.value} for d in self.all_search_domains()
            ],
            "state": self.state.to_dict(),
        }

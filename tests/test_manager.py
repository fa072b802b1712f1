"""
End-to-end reconciliation tests for ResolvConfManager.

Each test drives the manager against real files under tmp_path.
"""

import os
from unittest.mock import patch

import pytest

from resolv_conf_manager.config.change_detector import ReadOutcome
from resolv_conf_manager.config.writer import HEADER, TOO_MANY_SERVERS_COMMENT
from resolv_conf_manager.errors import ErrorCode, ResolvConfWriteError
from resolv_conf_manager.manager import ResolvConfManager
from resolv_conf_manager.models import DnsServerSource
from resolv_conf_manager.settings import ManagerSettings

from helpers import nameservers, search_line


def managed_text(manager):
    return manager.managed_path.read_text()


class TestReconcile:
    """Source file changes flow through to the managed file."""

    def test_end_to_end(self, manager, source_writer):
        source_writer("nameserver 1.2.3.4\nsearch example.com\n")
        assert manager.write_resolv_conf() is True

        text = managed_text(manager)
        assert text.startswith(HEADER)
        assert nameservers(text) == ["1.2.3.4"]
        assert search_line(text) == "search example.com"

        source_writer("nameserver 5.6.7.8\n")
        assert manager.write_resolv_conf() is True

        text = managed_text(manager)
        assert nameservers(text) == ["5.6.7.8"]
        assert search_line(text) == ""

    def test_link_servers_survive_source_changes(self, manager, source_writer):
        manager.add_dns_server("192.0.2.2")
        source_writer("nameserver 192.0.2.1\n")
        manager.write_resolv_conf()
        assert nameservers(managed_text(manager)) == ["192.0.2.1", "192.0.2.2"]

        source_writer("nameserver 192.0.2.3\n")
        manager.write_resolv_conf()

        assert nameservers(managed_text(manager)) == ["192.0.2.3", "192.0.2.2"]
        assert [s.source for s in manager.all_dns_servers()] == [DnsServerSource.SYSTEM, DnsServerSource.LINK]

    def test_server_cap_applied_to_output(self, manager, source_writer):
        source_writer("".join(f"nameserver 10.0.0.{i}\n" for i in range(1, 6)))

        manager.write_resolv_conf()

        text = managed_text(manager)
        assert nameservers(text) == ["10.0.0.1", "10.0.0.2", "10.0.0.3"]
        assert TOO_MANY_SERVERS_COMMENT in text
        # all five stay known, only the output is truncated
        assert len(manager.dns_servers) == 5

    def test_fallback_when_source_empty(self, manager, source_writer):
        source_writer("# nothing here\n")
        manager.write_resolv_conf()
        assert nameservers(managed_text(manager)) == ["9.9.9.9"]

    def test_fallback_when_source_absent(self, manager):
        assert manager.read_resolv_conf() == ReadOutcome.ABSENT
        manager.write_resolv_conf()
        assert nameservers(managed_text(manager)) == ["9.9.9.9"]

    def test_no_fallback_when_link_server_known(self, manager):
        manager.add_dns_server("192.0.2.2")
        manager.write_resolv_conf()
        assert nameservers(managed_text(manager)) == ["192.0.2.2"]

    def test_disabled_read_policy(self, source_path, managed_path, flushes, source_writer):
        settings = ManagerSettings(
            paths={"source": source_path, "managed": managed_path},
            resolver={"read_resolv_conf": False, "fallback_dns": []},
        )
        manager = ResolvConfManager(settings, flush_cache=lambda: flushes.append(1))
        source_writer("nameserver 1.2.3.4\n")

        assert manager.read_resolv_conf() == ReadOutcome.DISABLED
        assert len(manager.dns_servers) == 0
        assert flushes == []


class TestIdempotence:

    def test_second_write_is_skipped(self, manager, source_writer, flushes):
        source_writer("nameserver 1.2.3.4\n")
        assert manager.write_resolv_conf() is True
        inode = manager.managed_path.stat().st_ino

        assert manager.write_resolv_conf() is False

        assert manager.managed_path.stat().st_ino == inode
        assert manager.state.read_count == 1
        assert manager.state.write_count == 1
        assert flushes == [1]

    def test_unchanged_read_is_a_no_op(self, manager, source_writer):
        source_writer("nameserver 1.2.3.4\n")
        assert manager.read_resolv_conf() == ReadOutcome.LOADED
        assert manager.read_resolv_conf() == ReadOutcome.UNCHANGED

    def test_touch_with_same_content_flushes(self, manager, source_writer, flushes):
        source_writer("nameserver 1.2.3.4\n")
        manager.write_resolv_conf()

        source_writer("nameserver 1.2.3.4\n")

        assert manager.write_resolv_conf() is False
        assert manager.state.read_count == 2
        assert flushes == [1, 1]

    def test_external_edit_of_managed_file_is_repaired(self, manager, source_writer):
        source_writer("nameserver 1.2.3.4\n")
        manager.write_resolv_conf()

        manager.managed_path.write_text("nameserver 6.6.6.6\n")
        mtime_ns = manager.managed_path.stat().st_mtime_ns + 1_000_000_000
        os.utime(manager.managed_path, ns=(mtime_ns, mtime_ns))

        assert manager.write_resolv_conf() is True
        assert nameservers(managed_text(manager)) == ["1.2.3.4"]

    def test_mtime_moving_backwards_is_read_once(self, manager, source_path, source_writer, flushes):
        source_writer("nameserver 1.2.3.4\n")
        manager.read_resolv_conf()
        newest = manager.state.resolv_conf_mtime_ns

        older = newest - 10_000_000_000
        os.utime(source_path, ns=(older, older))

        assert manager.read_resolv_conf() == ReadOutcome.LOADED
        assert manager.read_resolv_conf() == ReadOutcome.UNCHANGED
        assert manager.state.resolv_conf_mtime_ns == newest
        assert flushes == [1, 1]


class TestSourceIsolation:
    """resolv.conf and links contribute independently to the published file."""

    def test_reread_keeps_published_order(self, manager, source_writer):
        source_writer("nameserver 192.0.2.1\nnameserver 192.0.2.2\n")
        manager.add_dns_server("198.51.100.7")
        manager.write_resolv_conf()
        assert nameservers(managed_text(manager)) == ["192.0.2.1", "192.0.2.2", "198.51.100.7"]

        source_writer("nameserver 192.0.2.1\nnameserver 192.0.2.2\n")
        manager.write_resolv_conf()

        assert nameservers(managed_text(manager)) == ["192.0.2.1", "192.0.2.2", "198.51.100.7"]
        assert manager.current_dns_server.server_string == "192.0.2.1"
        assert manager.current_dns_server.source == DnsServerSource.SYSTEM

    def test_shared_server_published_once(self, manager, source_writer):
        manager.add_dns_server("192.0.2.1")
        source_writer("nameserver 192.0.2.1\n")

        manager.write_resolv_conf()

        assert nameservers(managed_text(manager)) == ["192.0.2.1"]
        assert len(manager.dns_servers) == 1
        assert len(manager.link_dns_servers) == 1

    def test_file_dropping_server_keeps_link_copy(self, manager, source_writer):
        source_writer("nameserver 192.0.2.1\n")
        manager.add_dns_server("192.0.2.1")
        manager.write_resolv_conf()

        source_writer("nameserver 192.0.2.9\n")
        manager.write_resolv_conf()

        assert nameservers(managed_text(manager)) == ["192.0.2.9", "192.0.2.1"]
        assert [s.server_string for s in manager.link_dns_servers] == ["192.0.2.1"]

    def test_link_removal_keeps_file_server(self, manager, source_writer):
        manager.add_dns_server("192.0.2.1")
        source_writer("nameserver 192.0.2.1\n")
        manager.write_resolv_conf()

        assert manager.remove_dns_server("192.0.2.1") is not None
        manager.write_resolv_conf()

        assert nameservers(managed_text(manager)) == ["192.0.2.1"]
        assert [s.source for s in manager.all_dns_servers()] == [DnsServerSource.SYSTEM]

    def test_file_dropping_domain_keeps_link_copy(self, manager, source_writer):
        source_writer("nameserver 192.0.2.1\nsearch example.com\n")
        manager.add_search_domain("example.com")
        manager.write_resolv_conf()
        assert search_line(managed_text(manager)) == "search example.com"

        source_writer("nameserver 192.0.2.1\nsearch other.example\n")
        manager.write_resolv_conf()

        assert search_line(managed_text(manager)) == "search other.example example.com"

    def test_link_domain_removal_keeps_file_domain(self, manager, source_writer):
        manager.add_search_domain("example.com")
        source_writer("nameserver 192.0.2.1\nsearch example.com\n")
        manager.write_resolv_conf()

        assert manager.remove_search_domain("example.com") is not None
        manager.write_resolv_conf()

        assert search_line(managed_text(manager)) == "search example.com"
        assert [d.source for d in manager.all_search_domains()] == [DnsServerSource.SYSTEM]


class TestLoopAvoidance:

    def test_source_linked_to_managed_file(self, manager, source_path, source_writer, flushes):
        source_writer("nameserver 1.2.3.4\n")
        manager.write_resolv_conf()

        source_path.unlink()
        source_path.symlink_to(manager.managed_path)

        assert manager.read_resolv_conf() == ReadOutcome.SELF_LINK
        assert manager.write_resolv_conf() is False
        assert [s.server_string for s in manager.dns_servers] == ["1.2.3.4"]
        assert flushes == [1]


class TestReadFailure:
    """Failed reads drop what came from the file and keep everything else."""

    def test_unreadable_source(self, manager, source_path, source_writer, flushes):
        manager.add_dns_server("192.0.2.2")
        manager.add_search_domain("link.example")
        source_writer("nameserver 1.2.3.4\nsearch example.com\n")
        manager.read_resolv_conf()
        mtime_ns = manager.state.resolv_conf_mtime_ns

        source_writer("nameserver 5.6.7.8\n")
        with patch("resolv_conf_manager.config.change_detector.open", create=True,
                   side_effect=PermissionError(13, "Permission denied")):
            assert manager.read_resolv_conf() == ReadOutcome.FAILED

        assert len(manager.dns_servers) == 0
        assert len(manager.search_domains) == 0
        assert [s.server_string for s in manager.all_dns_servers()] == ["192.0.2.2"]
        assert [d.name for d in manager.all_search_domains()] == ["link.example"]
        assert manager.state.resolv_conf_mtime_ns == mtime_ns
        assert manager.state.failed_read_count == 1
        assert manager.state.last_error.code == ErrorCode.READ_FAILED
        assert flushes == [1]

    def test_failed_file_is_retried(self, manager, source_path, source_writer):
        source_writer("nameserver 1.2.3.4\n")
        with patch("resolv_conf_manager.config.change_detector.open", create=True,
                   side_effect=PermissionError(13, "Permission denied")):
            manager.read_resolv_conf()

        assert manager.read_resolv_conf() == ReadOutcome.LOADED
        assert [s.server_string for s in manager.dns_servers] == ["1.2.3.4"]

    def test_source_is_a_directory(self, manager, source_path):
        source_path.mkdir()
        assert manager.read_resolv_conf() == ReadOutcome.FAILED

    def test_error_while_reading_lines(self, manager, source_writer, flushes, monkeypatch):
        source_writer("nameserver 1.2.3.4\n")
        manager.read_resolv_conf()
        source_writer("nameserver 1.2.3.4\nnameserver 5.6.7.8\n")

        def failing_merge(lines):
            raise OSError(5, "Input/output error")

        monkeypatch.setattr(manager.merger, "merge", failing_merge)

        assert manager.read_resolv_conf() == ReadOutcome.FAILED
        assert len(manager.dns_servers) == 0
        assert manager.current_dns_server is None
        assert flushes == [1]

    def test_current_server_repointed_to_survivor(self, manager, source_writer):
        source_writer("nameserver 1.2.3.4\n")
        manager.read_resolv_conf()
        manager.add_dns_server("192.0.2.2")
        assert manager.current_dns_server.server_string == "1.2.3.4"

        source_writer("nameserver 5.6.7.8\n")
        with patch("resolv_conf_manager.config.change_detector.open", create=True,
                   side_effect=PermissionError(13, "Permission denied")):
            manager.read_resolv_conf()

        assert manager.current_dns_server.server_string == "192.0.2.2"


class TestCurrentServer:

    def test_first_listed_server_selected(self, manager, source_writer):
        source_writer("nameserver 1.1.1.1\nnameserver 2.2.2.2\n")
        manager.read_resolv_conf()
        assert manager.current_dns_server.server_string == "1.1.1.1"

        source_writer("nameserver 2.2.2.2\nnameserver 1.1.1.1\n")
        manager.read_resolv_conf()
        assert manager.current_dns_server.server_string == "2.2.2.2"

    def test_removed_link_server_reselects(self, manager):
        manager.add_dns_server("192.0.2.1")
        manager.add_dns_server("192.0.2.2")
        manager.select_first_dns_server()

        removed = manager.remove_dns_server("192.0.2.1")

        assert removed.server_string == "192.0.2.1"
        assert manager.current_dns_server.server_string == "192.0.2.2"

    def test_system_server_not_removed_directly(self, manager, source_writer):
        source_writer("nameserver 1.2.3.4\n")
        manager.read_resolv_conf()

        assert manager.remove_dns_server("1.2.3.4") is None
        assert len(manager.dns_servers) == 1

    def test_only_link_sources_added_directly(self, manager):
        with pytest.raises(ValueError):
            manager.add_dns_server("192.0.2.1", DnsServerSource.SYSTEM)
        with pytest.raises(ValueError):
            manager.add_search_domain("example.com", DnsServerSource.FALLBACK)

    def test_add_is_idempotent(self, manager):
        first = manager.add_dns_server("192.0.2.1")
        assert manager.add_dns_server("192.0.2.1") is first
        assert len(manager.link_dns_servers) == 1


class TestWriteFailure:

    def test_failure_propagates_and_is_recorded(self, manager, source_writer, tmp_path):
        source_writer("nameserver 1.2.3.4\n")
        # a regular file where the managed directory should be
        (tmp_path / "run").write_text("")

        with pytest.raises(ResolvConfWriteError) as exc_info:
            manager.write_resolv_conf()

        assert exc_info.value.code == ErrorCode.TEMP_FILE_FAILED
        assert manager.state.failed_write_count == 1
        assert manager.state.write_count == 0
        assert manager.state.last_error is exc_info.value

        os.unlink(tmp_path / "run")
        assert manager.write_resolv_conf() is True
        assert nameservers(managed_text(manager)) == ["1.2.3.4"]

    def test_failure_keeps_previous_managed_file(self, manager, source_writer):
        source_writer("nameserver 1.2.3.4\n")
        manager.write_resolv_conf()

        source_writer("nameserver 5.6.7.8\n")
        with patch("resolv_conf_manager.config.publisher.os.replace",
                   side_effect=OSError(16, "Device or resource busy")):
            with pytest.raises(ResolvConfWriteError):
                manager.write_resolv_conf()

        assert nameservers(managed_text(manager)) == ["1.2.3.4"]

        # the next attempt publishes even though the collections did not change
        assert manager.write_resolv_conf() is True
        assert nameservers(managed_text(manager)) == ["5.6.7.8"]


def test_to_dict(manager, source_writer):
    manager.add_dns_server("192.0.2.2")
    source_writer("nameserver 1.2.3.4\nsearch example.com\n")
    manager.write_resolv_conf()

    status = manager.to_dict()

    assert status["dns_servers"] == [
        {"address": "1.2.3.4", "source": "system"},
        {"address": "192.0.2.2", "source": "link"},
    ]
    assert status["fallback_dns_servers"] == ["9.9.9.9"]
    assert status["search_domains"] == [{"name": "example.com", "source": "system"}]
    assert status["current_dns_server"] == "1.2.3.4"
    assert status["state"]["write_count"] == 1

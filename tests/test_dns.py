"""Address and domain parsing tests."""

import ipaddress
import socket

import pytest

from resolv_conf_manager.dns import ROOT_DOMAIN, parse_domain_token, parse_server_address
from resolv_conf_manager.errors import AddressParseError, DomainParseError, ErrorCode


class TestParseServerAddress:

    def test_ipv4(self):
        parsed = parse_server_address("192.0.2.53")
        assert parsed.address == ipaddress.ip_address("192.0.2.53")
        assert parsed.ifindex is None
        assert parsed.family == socket.AF_INET

    def test_ipv6(self):
        parsed = parse_server_address("2001:db8::53")
        assert parsed.address.version == 6
        assert parsed.family == socket.AF_INET6

    def test_ipv6_with_numeric_zone(self):
        parsed = parse_server_address("fe80::1%3")
        assert parsed.ifindex == 3

    @pytest.mark.parametrize("text", ["", "   ", "not-an-address", "1.2.3", "300.1.1.1", "1.2.3.4%2", "fe80::1%", "fe80::1%0"])
    def test_invalid(self, text):
        with pytest.raises(AddressParseError) as exc_info:
            parse_server_address(text)
        assert exc_info.value.code == ErrorCode.INVALID_ADDRESS

    def test_unknown_interface_name(self, monkeypatch):
        def no_such_interface(name):
            raise OSError("no interface with this name")

        monkeypatch.setattr(socket, "if_nametoindex", no_such_interface)

        with pytest.raises(AddressParseError, match="unknown interface"):
            parse_server_address("fe80::1%nope0")


class TestParseDomainToken:

    def test_lowercased_and_trailing_dot_dropped(self):
        assert parse_domain_token("Corp.Example.COM.") == "corp.example.com"

    def test_root(self):
        assert parse_domain_token(".") == ROOT_DOMAIN

    def test_quoted(self):
        assert parse_domain_token('"example.org"') == "example.org"

    def test_underscore_and_hyphen_allowed(self):
        assert parse_domain_token("_srv.my-host.example") == "_srv.my-host.example"

    @pytest.mark.parametrize("text", [
        "",
        "a..b",
        "-leading.example",
        "bad!char.example",
        "x" * 64 + ".example",
        ".".join(["abcdefghij"] * 24),
    ])
    def test_invalid(self, text):
        with pytest.raises(DomainParseError) as exc_info:
            parse_domain_token(text)
        assert exc_info.value.code == ErrorCode.INVALID_DOMAIN

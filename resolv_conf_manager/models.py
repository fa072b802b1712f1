"""
Pydantic data models for resolv-conf-manager.

DNS server and search-domain records shared by the reader, the merger and
the writer.
"""

from enum import Enum
from ipaddress import IPv4Address, IPv6Address
from typing import Optional, Tuple, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from .dns import ServerAddress, parse_domain_token
from .errors import DomainParseError


# Enumerations

class DnsServerSource(str, Enum):
    """Provenance of a DNS server or search domain."""
    SYSTEM = "system"
    LINK = "link"
    FALLBACK = "fallback"


# Core Entities

class DnsServerRecord(BaseModel):
    """DNS server known to the manager."""

    address: Union[IPv4Address, IPv6Address] = Field(..., description="Server address")
    source: DnsServerSource = Field(..., description="Where the server came from")
    ifindex: Optional[int] = Field(None, gt=0, description="Link index for scoped IPv6 addresses")
    marked: bool = Field(False, exclude=True, description="Set only during a reconciliation cycle")

    @model_validator(mode='after')
    def validate_ifindex(self) -> 'DnsServerRecord':
        """Only IPv6 addresses carry a zone."""
        if self.ifindex is not None and self.address.version != 6:
            raise ValueError("ifindex is only valid for IPv6 servers")
        return self

    @classmethod
    def from_address(cls, parsed: ServerAddress, source: DnsServerSource) -> 'DnsServerRecord':
        return cls(address=parsed.address, source=source, ifindex=parsed.ifindex)

    @property
    def key(self) -> Tuple[str, Optional[int]]:
        return (self.address.compressed, self.ifindex)

    @property
    def server_string(self) -> str:
        """Textual form written after ``nameserver``."""
        if self.ifindex is not None and self.address.is_link_local:
            return f"{self.address.compressed}%{self.ifindex}"
        return self.address.compressed


class SearchDomainRecord(BaseModel):
    """Search domain known to the manager."""

    name: str = Field(..., min_length=1, description="Normalized domain name")
    source: DnsServerSource = Field(..., description="Where the domain came from")
    marked: bool = Field(False, exclude=True, description="Set only during a reconciliation cycle")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        try:
            return parse_domain_token(v)
        except DomainParseError as e:
            raise ValueError(e.message) from e

    @field_validator('source')
    @classmethod
    def validate_source(cls, v: DnsServerSource) -> DnsServerSource:
        if v == DnsServerSource.FALLBACK:
            raise ValueError("search domains have no fallback source")
        return v

    @property
    def key(self) -> str:
        return self.name

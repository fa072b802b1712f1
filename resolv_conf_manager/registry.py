"""
Ordered, key-unique collections of DNS servers and search domains.

Each collection holds records of a single source, so the same address may be
known from resolv.conf and from a link at once without the two interfering.
Insertion order is the order the records are published in. Lookups by key
are O(1), as are moves to the back.
"""

import logging
from collections import OrderedDict
from typing import Generic, Hashable, Iterator, List, Optional, TypeVar

from .models import DnsServerRecord, DnsServerSource, SearchDomainRecord

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", DnsServerRecord, SearchDomainRecord)


class RecordRegistry(Generic[RecordT]):
    """Insertion-ordered map from record key to record, for one source."""

    kind = "record"

    def __init__(self, source: DnsServerSource):
        self.source = source
        self._records: "OrderedDict[Hashable, RecordT]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[RecordT]:
        return iter(list(self._records.values()))

    def __contains__(self, key: Hashable) -> bool:
        return key in self._records

    def get(self, key: Hashable) -> Optional[RecordT]:
        return self._records.get(key)

    def first(self) -> Optional[RecordT]:
        for record in self._records.values():
            return record
        return None

    def add(self, record: RecordT) -> RecordT:
        """
        Append a record.

        Raises:
            KeyError: If a record with the same key already exists
            ValueError: If the record comes from another source
        """
        if record.source != self.source:
            raise ValueError(f"{record.source.value} {self.kind} does not belong "
                             f"in the {self.source.value} collection")
        if record.key in self._records:
            raise KeyError(record.key)
        self._records[record.key] = record
        return record

    def move_back_and_unmark(self, record: RecordT) -> None:
        """Unmark a reaffirmed record and move it behind the others.

        Records that are not marked keep their place.
        """
        if not record.marked:
            return
        record.marked = False
        self._records.move_to_end(record.key)

    def remove(self, key: Hashable) -> Optional[RecordT]:
        return self._records.pop(key, None)

    def mark_all(self) -> int:
        """Mark every record. Returns the number marked."""
        for record in self._records.values():
            record.marked = True
        return len(self._records)

    def unlink_marked(self) -> List[RecordT]:
        """Remove and return every record that is still marked."""
        removed = [r for r in self._records.values() if r.marked]
        for record in removed:
            del self._records[record.key]
            logger.debug(f"Removed {self.source.value} {self.kind} {record.key}")
        return removed

    def clear(self) -> List[RecordT]:
        """Remove and return every record, marked or not."""
        removed = list(self._records.values())
        for record in removed:
            record.marked = False
        self._records.clear()
        return removed


class DnsServerRegistry(RecordRegistry[DnsServerRecord]):
    """Known DNS servers of one source, keyed by address and link index."""

    kind = "DNS server"


class SearchDomainRegistry(RecordRegistry[SearchDomainRecord]):
    """Known search domains of one source, keyed by normalized name."""

    kind = "search domain"

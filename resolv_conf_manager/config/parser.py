"""
Line parser for resolv.conf.

Classifies a single line as a nameserver directive, a search-list directive,
or something to ignore.
"""

from enum import Enum
from typing import Iterable, Iterator, NamedTuple, Optional

COMMENT_CHARS = ("#", ";")

# "domain" is read like a single-entry "search"; both feed the search list
SEARCH_KEYWORDS = ("domain", "search")
SERVER_KEYWORD = "nameserver"


class DirectiveKind(str, Enum):
    ADD_SERVER = "add_server"
    ADD_SEARCH_LIST = "add_search_list"
    IGNORE = "ignore"


class Directive(NamedTuple):
    kind: DirectiveKind
    argument: str = ""
    line_number: int = 0


IGNORE = Directive(DirectiveKind.IGNORE)


def first_word(line: str, word: str) -> Optional[str]:
    """Return the rest of ``line`` if its first word is ``word``, else None."""
    if not line.startswith(word):
        return None

    rest = line[len(word):]
    if not rest:
        return ""
    if not rest[0].isspace():
        return None
    return rest.strip()


def parse_line(line: str, line_number: int = 0) -> Directive:
    """
    Classify one resolv.conf line.

    Args:
        line: Raw line, with or without the trailing newline
        line_number: 1-based line number, kept for log messages

    Returns:
        Directive; keywords without an argument are ignored
    """
    stripped = line.strip()
    if not stripped or stripped.startswith(COMMENT_CHARS):
        return IGNORE

    argument = first_word(stripped, SERVER_KEYWORD)
    if argument is not None:
        if not argument:
            return IGNORE
        return Directive(DirectiveKind.ADD_SERVER, argument, line_number)

    for keyword in SEARCH_KEYWORDS:
        argument = first_word(stripped, keyword)
        if argument is not None:
            if not argument:
                return IGNORE
            return Directive(DirectiveKind.ADD_SEARCH_LIST, argument, line_number)

    return IGNORE


def parse_lines(lines: Iterable[str]) -> Iterator[Directive]:
    """Yield the non-ignored directives of ``lines`` in order."""
    for line_number, line in enumerate(lines, start=1):
        directive = parse_line(line, line_number)
        if directive.kind != DirectiveKind.IGNORE:
            yield directive

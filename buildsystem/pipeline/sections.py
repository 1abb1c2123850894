"""Split markdown-like documents into top-level sections.

A top-level heading is a line that starts with ``##`` followed by spaces,
an optional numeric outline prefix (``1``, ``1.``, ``1.2``) and the title.
A heading made of a number alone (``## 1``) keeps the number as its title,
since the prefix is only stripped when a title follows it.
Deeper headings (``###`` and below) stay inside the enclosing section.

Scanning is done in two steps so each boundary rule can be tested alone:
``iter_headings`` finds heading positions, ``extract_sections`` slices the
text between consecutive headings.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterator, List

from ..utils.strings import normalize_line_endings

logger = logging.getLogger(__name__)

HEADING_PREFIX = "##"

# "## 1.2 Title" -> title "Title"; "## 1" -> title "1"
_HEADING_LINE = re.compile(
    r"^##[ \t]+(?:\d+(?:\.\d+)*\.?[ \t]+)?(?P<title>[^\n]*)$", re.MULTILINE
)


@dataclass(frozen=True)
class Heading:
    """Position of one top-level heading line."""

    start: int
    end: int
    title: str


@dataclass(frozen=True)
class Section:
    """A top-level section: heading line plus everything up to the next one."""

    title: str
    content: str

    def to_dict(self) -> dict:
        return {"title": self.title, "content": self.content}


def iter_headings(text: str) -> Iterator[Heading]:
    """
    Yield top-level headings of an LF-normalised text in source order.

    Args:
        text: Document text with LF line endings

    Yields:
        Heading with the offset of the line start, line end and clean title
    """
    for match in _HEADING_LINE.finditer(text):
        yield Heading(
            start=match.start(),
            end=match.end(),
            title=match.group("title").strip(),
        )


def extract_sections(text: str) -> List[Section]:
    """
    Extract ordered (title, content) sections from a document.

    Line endings are normalised first. Text before the first heading is not
    part of any section. Returns an empty list when the document has no
    top-level heading; callers decide whether that is an error.

    Example:
        >>> extract_sections("## 1 Home\\nHome content.\\n## 2 About\\nAbout content.")
        [Section(title='Home', content='## 1 Home\\nHome content.'), Section(title='About', content='## 2 About\\nAbout content.')]
    """
    normalized = normalize_line_endings(text)
    headings = list(iter_headings(normalized))

    if not headings:
        logger.warning("No top-level sections found in document")
        return []

    if normalized[: headings[0].start].strip():
        logger.debug(
            f"Ignoring {headings[0].start} chars of preamble before first heading"
        )

    sections = []
    for current, following in zip(headings, headings[1:] + [None]):
        end = following.start if following is not None else len(normalized)
        sections.append(
            Section(title=current.title, content=normalized[current.start:end].strip())
        )

    return sections

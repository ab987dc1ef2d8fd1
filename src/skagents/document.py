"""SKAgents Document — lossless parse and render of AGENTS.md.

AGENTS.md mixes human-written notes with machine-owned skill sections:

    # My notes
    Free text, kept byte-for-byte.

    <!-- skagents(Start alpha) -->
    ## alpha
    Alpha instructions
    <!-- skagents(End alpha) -->

Parsing is a single pass over lines with two states, outside a section or
inside ``Start <name>``. Anything that breaks the pairing (an End for a
different name, an End with no Start, a Start inside a section, a section
still open at end of file) rejects the whole document.
"""

from __future__ import annotations

import logging
import re
from typing import Annotated, Iterable, Literal, Optional, Union

from pydantic import BaseModel, Field

from . import MARKER_TOOL
from .errors import MalformedDocumentError
from .models import Skill

logger = logging.getLogger("skagents.document")

MARKER_PATTERN = re.compile(
    rf"^<!-- {re.escape(MARKER_TOOL)}\((?P<kind>Start|End) (?P<name>.+)\) -->$"
)


def start_marker(name: str) -> str:
    """The Start marker line for a section (without line terminator)."""
    return f"<!-- {MARKER_TOOL}(Start {name}) -->"


def end_marker(name: str) -> str:
    """The End marker line for a section (without line terminator)."""
    return f"<!-- {MARKER_TOOL}(End {name}) -->"


def heading_for(name: str) -> str:
    return f"## {name}"


def split_lines(text: str) -> list[str]:
    """Split on LF keeping terminators, so ``"".join(result) == text``."""
    pieces = text.split("\n")
    lines = [piece + "\n" for piece in pieces[:-1]]
    if pieces[-1]:
        lines.append(pieces[-1])
    return lines


def split_eol(line: str) -> tuple[str, str]:
    """Separate a line from its terminator (``\\r\\n``, ``\\n`` or none)."""
    if line.endswith("\r\n"):
        return line[:-2], "\r\n"
    if line.endswith("\n"):
        return line[:-1], "\n"
    return line, ""


class FreeText(BaseModel):
    """Text outside any marker pair, reproduced verbatim."""

    kind: Literal["text"] = "text"
    text: str


class Section(BaseModel):
    """A named block between ``Start <name>`` and ``End <name>`` markers.

    ``lines`` holds the interior exactly as read (heading line included,
    marker lines excluded). The marker terminators are kept so an
    untouched section renders back byte-identical.
    """

    kind: Literal["section"] = "section"
    name: str
    lines: list[str] = Field(default_factory=list)
    start_eol: str = "\n"
    end_eol: str = "\n"

    @classmethod
    def from_content(cls, name: str, content: str, eol: str = "\n") -> "Section":
        """Build a section holding the ``## <name>`` heading and a skill body.

        Every interior line, the heading included, ends with ``eol``.
        """
        lines = [heading_for(name) + eol]
        lines.extend(split_eol(line)[0] + eol for line in split_lines(content))
        return cls(name=name, lines=lines, start_eol=eol, end_eol=eol)

    @property
    def heading(self) -> Optional[str]:
        """The ``## <name>`` heading line, if the section starts with one."""
        if self.lines and split_eol(self.lines[0])[0] == heading_for(self.name):
            return self.lines[0]
        return None

    @property
    def content(self) -> str:
        """The skill body: interior after the heading, final terminator dropped."""
        body_lines = self.lines[1:] if self.heading is not None else self.lines
        body = "".join(body_lines)
        return split_eol(body)[0]

    def render(self) -> str:
        return (
            start_marker(self.name)
            + self.start_eol
            + "".join(self.lines)
            + end_marker(self.name)
            + self.end_eol
        )


Segment = Annotated[Union[FreeText, Section], Field(discriminator="kind")]


class Document(BaseModel):
    """An ordered list of free-text and section segments.

    By-name operations act on the first section with that name; later
    duplicates are left as they are.
    """

    segments: list[Segment] = Field(default_factory=list)

    @classmethod
    def parse(cls, text: str) -> "Document":
        """Parse AGENTS.md text into segments.

        Args:
            text: Full document text.

        Returns:
            Document: The parsed document; ``render()`` reproduces ``text``.

        Raises:
            MalformedDocumentError: On any marker pairing violation.
        """
        segments: list[Union[FreeText, Section]] = []
        buffer: list[str] = []
        current: Optional[Section] = None

        for number, line in enumerate(split_lines(text), start=1):
            bare, eol = split_eol(line)
            match = MARKER_PATTERN.match(bare)

            if match is None:
                if current is None:
                    buffer.append(line)
                else:
                    current.lines.append(line)
                continue

            kind, name = match.group("kind"), match.group("name")
            if kind == "Start":
                if current is not None:
                    raise MalformedDocumentError(
                        f"Start marker for '{name}' inside open section '{current.name}'",
                        line=number,
                    )
                if buffer:
                    segments.append(FreeText(text="".join(buffer)))
                    buffer = []
                current = Section(name=name, start_eol=eol)
            else:
                if current is None:
                    raise MalformedDocumentError(
                        f"End marker for '{name}' without a matching Start marker",
                        line=number,
                    )
                if name != current.name:
                    raise MalformedDocumentError(
                        f"End marker for '{name}' closes section '{current.name}'",
                        line=number,
                    )
                current.end_eol = eol
                segments.append(current)
                current = None

        if current is not None:
            raise MalformedDocumentError(f"Section '{current.name}' is never closed")
        if buffer:
            segments.append(FreeText(text="".join(buffer)))

        return cls(segments=segments)

    @classmethod
    def build(cls, skills: Iterable[Skill]) -> "Document":
        """A fresh document containing exactly the given skills, in order."""
        doc = cls()
        for skill in skills:
            doc.upsert_section(skill.name, skill.content)
        return doc

    def render(self) -> str:
        """Serialize back to text."""
        parts: list[str] = []
        for segment in self.segments:
            if isinstance(segment, Section):
                parts.append(segment.render())
            else:
                parts.append(segment.text)
        return "".join(parts)

    def sections(self) -> list[Section]:
        return [s for s in self.segments if isinstance(s, Section)]

    def section_names(self) -> list[str]:
        """Section names in document order (duplicates included)."""
        return [s.name for s in self.sections()]

    def get_section(self, name: str) -> Optional[Section]:
        """The first section with this name, or None."""
        for section in self.sections():
            if section.name == name:
                return section
        return None

    def _index_of(self, name: str) -> Optional[int]:
        for index, segment in enumerate(self.segments):
            if isinstance(segment, Section) and segment.name == name:
                return index
        return None

    def upsert_section(self, name: str, content: str) -> Section:
        """Replace a section's body in place, or append a new section.

        A replaced section keeps its position and marker terminators, and its
        new interior lines use the old Start marker's terminator. A new
        section goes after the last segment, one blank line below it.

        Args:
            name: Section (skill) name.
            content: Skill body; the ``## <name>`` heading is added.

        Returns:
            Section: The section now in the document.
        """
        index = self._index_of(name)
        if index is not None:
            old = self.segments[index]
            section = Section.from_content(name, content, eol=old.start_eol or "\n")
            section.start_eol = old.start_eol
            section.end_eol = old.end_eol
            self.segments[index] = section
            logger.debug("Replaced section %s", name)
            return section

        section = Section.from_content(name, content)
        self._append_separator()
        self.segments.append(section)
        logger.debug("Appended section %s", name)
        return section

    def _append_separator(self) -> None:
        if not self.segments:
            return
        last = self.segments[-1]
        if isinstance(last, Section) and not last.end_eol:
            last.end_eol = "\n"
        tail = self.render()
        if tail.endswith("\n\n"):
            return
        self.segments.append(FreeText(text="\n" if tail.endswith("\n") else "\n\n"))

    def remove_section(self, name: str) -> bool:
        """Delete the first section with this name, markers included.

        Free text on either side is left exactly as it was.

        Returns:
            bool: True if a section was removed.
        """
        index = self._index_of(name)
        if index is None:
            return False
        del self.segments[index]
        logger.debug("Removed section %s", name)
        return True


def parse_document(text: str) -> Document:
    """Parse AGENTS.md text (see Document.parse)."""
    return Document.parse(text)

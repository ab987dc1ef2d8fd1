"""SKAgents Merge — hunk-by-hunk resolution of skill vs AGENTS.md content.

The two sides are diffed line by line. Changes within three lines of each
other form one hunk, and each hunk is settled by a single choice: keep the
skill's lines or the AGENTS.md lines. Unchanged lines always survive.

    diff_hunks(local, remote)              -> list[Hunk]
    apply_choices(local, remote, choices)  -> resolved text (pure)
    resolve_conflict(name, local, remote, chooser)
                                           -> resolved text (asks per hunk)
"""

from __future__ import annotations

import difflib
import enum
import logging
from typing import Callable, Literal, Optional, Sequence

import click
from pydantic import BaseModel, Field
from rich.console import Console
from rich.markup import escape
from rich.text import Text

from .document import split_lines
from .errors import InputClosedError

logger = logging.getLogger("skagents.merge")

CONTEXT_LINES = 3


class Choice(str, enum.Enum):
    """Which side wins a hunk."""

    SKILL = "skill"
    AGENTS = "agents"

    @classmethod
    def parse(cls, answer: str) -> Optional["Choice"]:
        """Interpret a typed answer (``s``/``skill``/``a``/``agents``)."""
        value = answer.strip().lower()
        if value in ("s", "skill"):
            return cls.SKILL
        if value in ("a", "agents"):
            return cls.AGENTS
        return None


class HunkLine(BaseModel):
    """One line of a hunk: `` `` both sides, ``-`` skill only, ``+`` AGENTS.md only."""

    sign: Literal[" ", "-", "+"]
    text: str


LINE_STYLES = {"-": "red", "+": "green"}


def display_line(line: HunkLine) -> str:
    """``sign + text``, newline-terminated even for a last line without one."""
    text = line.text if line.text.endswith("\n") else line.text + "\n"
    return line.sign + text


class Hunk(BaseModel):
    """A run of changes plus surrounding context.

    ``local_start``/``local_end`` delimit the skill-side lines the hunk
    covers, so the lines between hunks can be copied through unchanged.
    """

    local_start: int
    local_end: int
    lines: list[HunkLine] = Field(default_factory=list)

    def render(self) -> str:
        """Unified-diff style view of the hunk."""
        return "".join(display_line(line) for line in self.lines)

    def resolve(self, choice: Choice) -> list[str]:
        """The lines this hunk contributes for a given choice, in order."""
        dropped = "+" if choice == Choice.SKILL else "-"
        return [line.text for line in self.lines if line.sign != dropped]


Chooser = Callable[[str, Hunk], Choice]


def diff_hunks(local: str, remote: str, context: int = CONTEXT_LINES) -> list[Hunk]:
    """Group the line differences between two texts into hunks.

    Args:
        local: Skill store content.
        remote: AGENTS.md section content.
        context: Changes closer than this many lines share a hunk.

    Returns:
        list[Hunk]: Hunks in order; empty when the texts are line-identical.
    """
    a = split_lines(local)
    b = split_lines(remote)
    matcher = difflib.SequenceMatcher(None, a, b, autojunk=False)
    if all(tag == "equal" for tag, *_ in matcher.get_opcodes()):
        return []

    hunks: list[Hunk] = []
    for group in matcher.get_grouped_opcodes(context):
        lines: list[HunkLine] = []
        for tag, i1, i2, j1, j2 in group:
            if tag == "equal":
                lines.extend(HunkLine(sign=" ", text=t) for t in a[i1:i2])
                continue
            if tag in ("replace", "delete"):
                lines.extend(HunkLine(sign="-", text=t) for t in a[i1:i2])
            if tag in ("replace", "insert"):
                lines.extend(HunkLine(sign="+", text=t) for t in b[j1:j2])
        hunks.append(Hunk(local_start=group[0][1], local_end=group[-1][2], lines=lines))
    return hunks


def _assemble(local_lines: list[str], hunks: Sequence[Hunk], choices: Sequence[Choice]) -> str:
    out: list[str] = []
    pos = 0
    for hunk, choice in zip(hunks, choices):
        out.extend(local_lines[pos:hunk.local_start])
        out.extend(hunk.resolve(choice))
        pos = hunk.local_end
    out.extend(local_lines[pos:])
    return "".join(out)


def apply_choices(local: str, remote: str, choices: Sequence[Choice]) -> str:
    """Resolve two texts given one choice per hunk.

    Args:
        local: Skill store content.
        remote: AGENTS.md section content.
        choices: One Choice per hunk, in hunk order.

    Returns:
        str: The merged text; ``local`` unchanged when there are no hunks.

    Raises:
        ValueError: If the number of choices doesn't match the hunks.
    """
    hunks = diff_hunks(local, remote)
    if not hunks:
        return local
    if len(choices) != len(hunks):
        raise ValueError(f"Expected {len(hunks)} choices, got {len(choices)}")
    return _assemble(split_lines(local), hunks, choices)


def resolve_conflict(name: str, local: str, remote: str, chooser: Chooser) -> str:
    """Resolve two texts by asking ``chooser`` about each hunk in turn.

    Raises:
        InputClosedError: Propagated from the chooser when input ends.
    """
    hunks = diff_hunks(local, remote)
    if not hunks:
        return local

    choices: list[Choice] = []
    for hunk in hunks:
        choice = chooser(name, hunk)
        logger.debug("Skill %s: hunk at line %d -> %s", name, hunk.local_start + 1, choice.value)
        choices.append(choice)
    return _assemble(split_lines(local), hunks, choices)


class InteractivePrompt:
    """Chooser that shows each hunk and reads ``s``/``a`` from the terminal.

    Args:
        console: Where hunks are displayed.
    """

    PROMPT = "Choose [s]kill or [a]gents for this hunk"

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def show(self, name: str, hunk: Hunk) -> None:
        self.console.print(f"\n[bold]Conflict in skill '{escape(name)}':[/bold]")
        view = Text()
        for line in hunk.lines:
            view.append(display_line(line), style=LINE_STYLES.get(line.sign))
        self.console.print(view, end="")

    def __call__(self, name: str, hunk: Hunk) -> Choice:
        self.show(name, hunk)
        while True:
            try:
                answer = click.prompt(self.PROMPT, default="", show_default=False)
            except click.Abort as exc:
                raise InputClosedError(
                    f"Input closed while resolving conflict in skill '{name}'"
                ) from exc
            choice = Choice.parse(answer)
            if choice is not None:
                return choice
            self.console.print("Enter 's' or 'a'.")

"""SKAgents error taxonomy.

Every error derives from SkagentsError so the CLI can report it with a
single handler, and from the builtin exception it specializes so plain
``except ValueError`` / ``except FileNotFoundError`` callers still work.
"""

from __future__ import annotations


class SkagentsError(Exception):
    """Base class for all SKAgents failures."""


class InvalidSkillNameError(SkagentsError, ValueError):
    """A skill name is empty or could escape the skills directory."""


class SkillNotFoundError(SkagentsError, FileNotFoundError):
    """A skill, file, or config key required by an operation is missing."""


class MalformedDocumentError(SkagentsError, ValueError):
    """AGENTS.md markers are mismatched, nested, orphaned, or unterminated."""

    def __init__(self, message: str, line: int | None = None) -> None:
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class StoreIOError(SkagentsError, OSError):
    """A filesystem read or write failed."""


class InputClosedError(SkagentsError, EOFError):
    """Interactive conflict resolution hit end of input."""


class ExternalToolError(SkagentsError, RuntimeError):
    """An external command (git) exited non-zero."""


class ConfigError(SkagentsError, ValueError):
    """Configuration is missing or cannot be interpreted."""

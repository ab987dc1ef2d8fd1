"""SKAgents Skill Store — one markdown file per skill.

Directory layout:
    <skills-dir>/
        .git/                   # Optional; enables commit-after-sync
        alpha/
            SKILL.md
        code-review/
            SKILL.md

Every name that reaches the filesystem passes validate_skill_name first,
so a skill name can never resolve outside the skills directory.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Optional

from . import SKILL_FILENAME
from .errors import InvalidSkillNameError, SkillNotFoundError, StoreIOError
from .models import Skill, validate_skill_name

logger = logging.getLogger("skagents.store")


def read_markdown(path: Path) -> str:
    """Read a UTF-8 markdown file.

    Raises:
        StoreIOError: If the file cannot be read or is not valid UTF-8.
    """
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise StoreIOError(f"Failed to read {path}: {exc}") from exc


class SkillStore:
    """File-backed mapping from skill name to markdown content.

    Args:
        root: The skills directory. Created lazily on first save.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root).expanduser()

    @staticmethod
    def validate_name(name: str) -> str:
        """Validate a user-supplied skill name (see validate_skill_name)."""
        return validate_skill_name(name)

    def path_for(self, name: str) -> Path:
        """Resolve the SKILL.md path for a skill.

        Args:
            name: Skill name.

        Returns:
            Path: ``<root>/<name>/SKILL.md``.

        Raises:
            InvalidSkillNameError: If the name is unsafe.
        """
        self.validate_name(name)
        return self.root / name / SKILL_FILENAME

    def exists(self, name: str) -> bool:
        """Check whether a skill is stored under this name."""
        return self.path_for(name).is_file()

    def load(self, name: str) -> str:
        """Read a skill's markdown content.

        Raises:
            SkillNotFoundError: If no skill is stored under this name.
            StoreIOError: If the file cannot be read.
        """
        path = self.path_for(name)
        if not path.is_file():
            raise SkillNotFoundError(f"Skill '{name}' not found in {self.root}")
        return read_markdown(path)

    def get(self, name: str) -> Skill:
        """Load a skill as a Skill model."""
        return Skill(name=name, content=self.load(name))

    def save(self, name: str, content: str) -> Path:
        """Write a skill, creating its directory and replacing old content.

        Args:
            name: Skill name.
            content: Markdown content, written as-is.

        Returns:
            Path: The written SKILL.md path.

        Raises:
            StoreIOError: If the directory or file cannot be written.
        """
        path = self.path_for(name)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise StoreIOError(f"Failed to write skill '{name}' to {path}: {exc}") from exc
        logger.info("Saved skill %s -> %s", name, path)
        return path

    def list_names(self, fragment: Optional[str] = None) -> list[str]:
        """List stored skill names in lexicographic order.

        Entries whose directory name fails validation (``.git``, stray
        files) are skipped rather than reported.

        Args:
            fragment: If given, only names containing this substring.

        Returns:
            list[str]: Sorted skill names.
        """
        if not self.root.is_dir():
            return []

        names: list[str] = []
        for entry in sorted(self.root.iterdir()):
            try:
                self.validate_name(entry.name)
            except InvalidSkillNameError:
                continue
            if entry.is_dir() and (entry / SKILL_FILENAME).is_file():
                names.append(entry.name)

        if fragment:
            names = [n for n in names if fragment in n]
        return names

    def delete(self, name: str) -> bool:
        """Remove a skill's directory.

        Returns:
            bool: True if something was removed; False if it was already absent.

        Raises:
            StoreIOError: If removal fails.
        """
        target = self.path_for(name).parent
        if not target.exists():
            return False
        try:
            shutil.rmtree(target)
        except OSError as exc:
            raise StoreIOError(f"Failed to delete skill '{name}' at {target}: {exc}") from exc
        logger.info("Deleted skill %s (%s)", name, target)
        return True

"""SKAgents data models — skills, sync status, config, and sync results.

A skill is a named markdown snippet stored at ``<skills-dir>/<name>/SKILL.md``.
The same snippet may also appear as a marked section inside AGENTS.md;
SyncStatus classifies how the two copies relate.
"""

from __future__ import annotations

import enum
import re
from typing import ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import InvalidSkillNameError

SKILL_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def validate_skill_name(name: str) -> str:
    """Reject names that are empty or could escape the skills directory.

    Args:
        name: Candidate skill name.

    Returns:
        str: The name, unchanged.

    Raises:
        InvalidSkillNameError: If the name is empty, contains a path
            separator or ``..``, or falls outside the allowed character set.
    """
    if not name:
        raise InvalidSkillNameError("Skill name must not be empty")
    if "/" in name or "\\" in name:
        raise InvalidSkillNameError(f"Skill name must not contain path separators: '{name}'")
    if ".." in name:
        raise InvalidSkillNameError(f"Skill name must not contain '..': '{name}'")
    if not SKILL_NAME_PATTERN.match(name):
        raise InvalidSkillNameError(
            f"Skill name may only use letters, digits, '.', '_' and '-': '{name}'"
        )
    return name


def normalize_content(content: str) -> str:
    """Normalize line endings and trailing newlines for comparison."""
    return content.replace("\r\n", "\n").rstrip("\n")


class SyncStatus(str, enum.Enum):
    """How a skill's store copy relates to its AGENTS.md section."""

    IN_SYNC = "in_sync"
    LOCAL = "local"
    REMOTE = "remote"
    CONFLICT = "conflict"

    @classmethod
    def classify(cls, local: Optional[str], remote: Optional[str]) -> Optional["SyncStatus"]:
        """Classify a (store, document) content pair; None when both are absent."""
        if local is None and remote is None:
            return None
        if remote is None:
            return cls.LOCAL
        if local is None:
            return cls.REMOTE
        if normalize_content(local) == normalize_content(remote):
            return cls.IN_SYNC
        return cls.CONFLICT


class Skill(BaseModel):
    """A stored skill: a name and its markdown content."""

    name: str = Field(description="Path-safe skill identifier")
    content: str = Field(default="", description="Raw markdown content")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Apply the skill-name allow-list."""
        return validate_skill_name(v)


class SkagentsConfig(BaseModel):
    """Persisted configuration — a flat mapping of string keys to values.

    ``skills-dir`` is the only key SKAgents requires; any other key is
    kept and listed as optional.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    skills_dir: Optional[str] = Field(default=None, alias="skills-dir")

    REQUIRED_KEYS: ClassVar[tuple[str, ...]] = ("skills-dir",)

    def get(self, key: str) -> Optional[str]:
        """Look up a value by its config-file key."""
        if key == "skills-dir":
            return self.skills_dir
        return (self.model_extra or {}).get(key)

    def set(self, key: str, value: str) -> None:
        """Set a value by its config-file key."""
        if key == "skills-dir":
            self.skills_dir = value
        else:
            setattr(self, key, value)

    def optional_items(self) -> list[tuple[str, str]]:
        """Non-required keys with their values, sorted by key."""
        return sorted((k, str(v)) for k, v in (self.model_extra or {}).items())

    def to_mapping(self) -> dict[str, str]:
        """Serialize using config-file keys, omitting unset values."""
        return self.model_dump(by_alias=True, exclude_none=True)


class SyncResult(BaseModel):
    """What a sync pass observed and changed."""

    statuses: dict[str, SyncStatus] = Field(default_factory=dict)
    adopted: list[str] = Field(
        default_factory=list, description="Names copied from AGENTS.md into the store"
    )
    resolved: list[str] = Field(
        default_factory=list, description="Names that went through conflict resolution"
    )
    document_written: bool = False
    committed: bool = False

    @property
    def out_of_sync(self) -> dict[str, SyncStatus]:
        """Statuses other than in-sync."""
        return {n: s for n, s in self.statuses.items() if s != SyncStatus.IN_SYNC}

"""SKAgents Sync — reconcile the skill store with AGENTS.md.

For every section in AGENTS.md:
    - no stored skill       -> adopt the section into the store
    - stored, same content  -> nothing to do
    - stored, different     -> resolve hunk by hunk, write both sides

Skills that exist only in the store are never added to AGENTS.md by sync;
use ``build`` to choose what the document contains. After the pass the
skills directory is committed if it is a git work tree.

A failed resolution (input closed) aborts the pass: skills saved before
the failure stay saved and AGENTS.md is not written. Re-running is safe,
since statuses are recomputed from what is on disk.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

from rich.console import Console
from rich.markup import escape

from . import vcs
from .document import Document, parse_document
from .errors import StoreIOError
from .merge import Chooser, InteractivePrompt, resolve_conflict
from .models import SyncResult, SyncStatus, normalize_content
from .store import SkillStore, read_markdown

logger = logging.getLogger("skagents.sync")


def compute_status(store: SkillStore, document: Optional[Document]) -> dict[str, SyncStatus]:
    """Classify every name found in the store or the document.

    Args:
        store: The skill store.
        document: Parsed AGENTS.md, or None when there is no document.

    Returns:
        dict[str, SyncStatus]: One entry per name in either side, sorted by name.
    """
    local = {name: store.load(name) for name in store.list_names()}
    remote: dict[str, str] = {}
    if document is not None:
        for section in document.sections():
            remote.setdefault(section.name, section.content)

    statuses: dict[str, SyncStatus] = {}
    for name in sorted(set(local) | set(remote)):
        status = SyncStatus.classify(local.get(name), remote.get(name))
        if status is not None:
            statuses[name] = status
    return statuses


def format_status(name: str, status: SyncStatus) -> str:
    """Render one status line, e.g. ``alpha (out of sync: conflict)``."""
    if status == SyncStatus.IN_SYNC:
        return name
    return f"{name} (out of sync: {status.value})"


def read_document(path: Path) -> tuple[Optional[Document], Optional[str]]:
    """Read and parse AGENTS.md.

    Returns:
        tuple: ``(document, original_text)``, or ``(None, None)`` if the file is absent.

    Raises:
        StoreIOError: If the file exists but cannot be read or decoded.
        MalformedDocumentError: If the markers are broken.
    """
    if not path.exists():
        return None, None
    text = read_markdown(path)
    return parse_document(text), text


def write_document(path: Path, text: str) -> None:
    """Write AGENTS.md text.

    Raises:
        StoreIOError: If the file cannot be written.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise StoreIOError(f"Failed to write {path}: {exc}") from exc
    logger.info("Wrote %s", path)


class SkillSync:
    """Operations that touch both the skill store and AGENTS.md.

    Args:
        store: The skill store.
        agents_path: Path to AGENTS.md.
        console: Where status lines and hunks are printed.
        chooser: Per-hunk decision callback (default: interactive prompt).
    """

    def __init__(
        self,
        store: SkillStore,
        agents_path: Path,
        console: Optional[Console] = None,
        chooser: Optional[Chooser] = None,
    ) -> None:
        self.store = store
        self.agents_path = Path(agents_path)
        self.console = console or Console()
        self.chooser = chooser or InteractivePrompt(self.console)

    def status(self) -> dict[str, SyncStatus]:
        """Statuses worth showing to the user.

        Empty when AGENTS.md is missing or holds no sections; otherwise
        every name from compute_status.
        """
        document, _ = read_document(self.agents_path)
        if document is None or not document.sections():
            return {}
        return compute_status(self.store, document)

    def _report(self, statuses: dict[str, SyncStatus]) -> None:
        for name, status in statuses.items():
            if status != SyncStatus.IN_SYNC:
                self.console.print(escape(format_status(name, status)), soft_wrap=True)

    def sync(self) -> SyncResult:
        """Reconcile AGENTS.md sections with the store, then commit.

        Returns:
            SyncResult: Statuses seen, names adopted or resolved, and what was written.

        Raises:
            MalformedDocumentError: If AGENTS.md markers are broken.
            InvalidSkillNameError: If a section name is not a safe skill name.
            InputClosedError: If conflict resolution runs out of input.
            ExternalToolError: If the commit step fails.
        """
        result = SyncResult()
        document, original = read_document(self.agents_path)
        if document is None:
            logger.info("%s not found; nothing to sync", self.agents_path)
            result.committed = vcs.commit_all(self.store.root)
            return result

        if document.sections():
            result.statuses = compute_status(self.store, document)
            self._report(result.statuses)

        for name in dict.fromkeys(document.section_names()):
            self.store.validate_name(name)
            section = document.get_section(name)
            remote = section.content

            if not self.store.exists(name):
                self.store.save(name, remote)
                result.adopted.append(name)
                logger.info("Adopted %s from %s", name, self.agents_path)
                continue

            local = self.store.load(name)
            if normalize_content(local) == normalize_content(remote):
                continue

            resolved = resolve_conflict(name, local, remote, self.chooser)
            self.store.save(name, resolved)
            document.upsert_section(name, resolved)
            result.resolved.append(name)

        rendered = document.render()
        if result.resolved or rendered != original:
            write_document(self.agents_path, rendered)
            result.document_written = True
        else:
            logger.debug("%s unchanged", self.agents_path)

        result.committed = vcs.commit_all(self.store.root)
        return result

    def sync_remote(self) -> SyncResult:
        """Sync, then ``git pull --rebase`` the skills directory."""
        result = self.sync()
        vcs.pull_rebase(self.store.root)
        return result

    def build(self, names: Iterable[str]) -> Document:
        """Write a fresh AGENTS.md holding exactly the named skills.

        Raises:
            SkillNotFoundError: If any named skill is not stored.
        """
        skills = [self.store.get(name) for name in names]
        document = Document.build(skills)
        write_document(self.agents_path, document.render())
        return document

    def delete(self, name: str) -> bool:
        """Remove a skill's section from AGENTS.md, keeping the stored skill.

        Returns:
            bool: True if a section was removed.
        """
        self.store.validate_name(name)
        document, _ = read_document(self.agents_path)
        if document is None or not document.remove_section(name):
            return False
        write_document(self.agents_path, document.render())
        return True

    def delete_globally(self, name: str) -> bool:
        """Remove a skill's section from AGENTS.md and delete the stored skill.

        Returns:
            bool: True if either the section or the stored skill existed.
        """
        removed_section = self.delete(name)
        removed_skill = self.store.delete(name)
        return removed_section or removed_skill


def run_sync(
    store: SkillStore,
    agents_path: Path,
    chooser: Optional[Chooser] = None,
    console: Optional[Console] = None,
) -> SyncResult:
    """Sync ``store`` with the document at ``agents_path`` (see SkillSync.sync)."""
    return SkillSync(store, agents_path, console=console, chooser=chooser).sync()


def sync_remote(
    store: SkillStore,
    agents_path: Path,
    chooser: Optional[Chooser] = None,
    console: Optional[Console] = None,
) -> SyncResult:
    """Sync, then pull with rebase (see SkillSync.sync_remote)."""
    return SkillSync(store, agents_path, console=console, chooser=chooser).sync_remote()

"""SKAgents VCS — the git calls made against the skills directory.

The skills directory may be a git work tree. After every sync the changes
are staged and committed; ``sync-remote`` additionally rebases onto the
upstream branch. A directory that is not a work tree is left alone.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

from .errors import ExternalToolError

logger = logging.getLogger("skagents.vcs")

COMMIT_MESSAGE = "Update skills"


def _git(root: Path, *args: str) -> subprocess.CompletedProcess:
    """Run ``git -C <root> <args>``, capturing output.

    Raises:
        ExternalToolError: If git cannot be started at all.
    """
    cmd = ["git", "-C", str(root), *args]
    logger.debug("Running %s", " ".join(cmd))
    try:
        return subprocess.run(cmd, capture_output=True, text=True)
    except OSError as exc:
        raise ExternalToolError(f"Failed to run git {' '.join(args)}: {exc}") from exc


def _check(root: Path, *args: str) -> subprocess.CompletedProcess:
    result = _git(root, *args)
    if result.returncode != 0:
        raise ExternalToolError(
            f"git {' '.join(args)} failed in {root} (rc={result.returncode}): "
            f"{result.stderr.strip()}"
        )
    return result


def is_repo(root: Path) -> bool:
    """Check whether ``root`` is inside a git work tree (False without git)."""
    if not Path(root).is_dir() or shutil.which("git") is None:
        return False
    return _git(root, "rev-parse", "--is-inside-work-tree").returncode == 0


def has_staged_changes(root: Path) -> bool:
    """Check whether the index differs from HEAD (or the empty tree)."""
    result = _git(root, "diff", "--cached", "--quiet")
    if result.returncode not in (0, 1):
        raise ExternalToolError(
            f"git diff --cached failed in {root} (rc={result.returncode}): {result.stderr.strip()}"
        )
    return result.returncode == 1


def commit_all(root: Path, message: str = COMMIT_MESSAGE) -> bool:
    """Stage and commit every change under the skills directory.

    Args:
        root: The skills directory.
        message: Commit message.

    Returns:
        bool: True if a commit was created.

    Raises:
        ExternalToolError: If any git command exits non-zero.
    """
    if not is_repo(root):
        return False
    # Only paths under root; the work tree may be larger than the skills dir.
    _check(root, "add", "-A", ".")
    if not has_staged_changes(root):
        logger.debug("Nothing to commit in %s", root)
        return False
    _check(root, "commit", "-m", message)
    logger.info("Committed skill changes in %s", root)
    return True


def pull_rebase(root: Path) -> bool:
    """Run ``git pull --rebase`` in the skills directory.

    Returns:
        bool: True if a pull ran; False when ``root`` is not a work tree.

    Raises:
        ExternalToolError: If the pull fails.
    """
    if not is_repo(root):
        return False
    _check(root, "pull", "--rebase")
    logger.info("Pulled and rebased %s", root)
    return True

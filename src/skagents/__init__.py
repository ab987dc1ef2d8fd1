"""SKAgents — skill-driven AGENTS.md builder and synchronizer.

Skills live as one markdown file each under a skills directory.
AGENTS.md carries marker-delimited copies of selected skills
alongside free-form human notes; `sync` reconciles the two.
"""

__version__ = "0.1.0"

MARKER_TOOL = "skagents"
SKILL_FILENAME = "SKILL.md"
DEFAULT_AGENTS_PATH = "AGENTS.md"

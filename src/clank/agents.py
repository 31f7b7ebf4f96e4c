"""Names of the agent files and directories clank manages."""

from pathlib import Path

# Tool directories as stored in the overlay (no leading dot)
AGENT_DIR_NAMES = ["claude", "gemini"]

# Tool directories as they appear in the target
MANAGED_AGENT_DIRS = [f".{name}" for name in AGENT_DIR_NAMES]

# The first tool directory receives the canonical prompt mapping
PRIMARY_AGENT_DIR = MANAGED_AGENT_DIRS[0]

# Aliases of the instructions file in the target
AGENT_FILES = ["AGENTS.md", "CLAUDE.md", "GEMINI.md"]

# Instructions file as stored in the overlay
INSTRUCTIONS_FILE = "agents.md"

# Directory for miscellaneous files, in both trees
CLANK_DIR = "clank"

# Tool-agnostic prompts directory in the overlay
PROMPTS_DIR = "prompts"

# Directory names managed by clank in the overlay
MANAGED_DIRS = [CLANK_DIR, PROMPTS_DIR, *AGENT_DIR_NAMES]

# Directory names managed by clank in the target
TARGET_MANAGED_DIRS = [CLANK_DIR, *MANAGED_AGENT_DIRS]

# Config names for each alias
AGENT_FILE_BY_NAME = {
    "agents": "AGENTS.md",
    "claude": "CLAUDE.md",
    "gemini": "GEMINI.md",
}


def get_agent_file_paths(directory: Path) -> dict[str, Path]:
    """Build the alias paths for one directory, keyed by agent name."""
    return {name: directory / filename for name, filename in AGENT_FILE_BY_NAME.items()}


def agent_paths(directory: Path, agents: list[str]) -> list[Path]:
    """Alias paths in a directory for each configured agent.

    Args:
        directory: Directory that holds (or will hold) the aliases
        agents: Configured agent names, e.g. ["agents", "claude"]

    Returns:
        Alias paths in configuration order. Unknown names are skipped.
    """
    paths = get_agent_file_paths(directory)
    return [paths[a.lower()] for a in agents if a.lower() in paths]

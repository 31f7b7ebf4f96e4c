"""Keep AI agent files in an overlay repository and symlink them into projects."""

__version__ = "0.3.0"

"""Colored output utilities for clank."""

import os
import sys
from typing import TextIO


class Output:
    """Handles colored and formatted output."""

    # ANSI color codes
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"

    def __init__(
        self,
        *,
        no_color: bool = False,
        quiet: bool = False,
        stream: TextIO | None = None,
        err_stream: TextIO | None = None,
    ):
        """Initialize output handler.

        Args:
            no_color: Disable colored output
            quiet: Suppress informational output
            stream: Output stream (default stdout)
            err_stream: Error stream (default stderr)
        """
        self.stream = stream or sys.stdout
        self.err_stream = err_stream or sys.stderr
        self.quiet = quiet

        self._use_color = self._should_use_color(no_color)

    def _should_use_color(self, no_color: bool) -> bool:
        if no_color:
            return False

        if os.environ.get("NO_COLOR"):
            return False

        if not hasattr(self.stream, "isatty") or not self.stream.isatty():
            return False

        return True

    def _colorize(self, text: str, *codes: str) -> str:
        if not self._use_color:
            return text
        return f"{''.join(codes)}{text}{self.RESET}"

    def success(self, message: str) -> None:
        """Print a success message (green)."""
        if self.quiet:
            return
        print(self._colorize(message, self.GREEN), file=self.stream)

    def warning(self, message: str) -> None:
        """Print a warning message (yellow), even when quiet."""
        print(self._colorize(f"Warning: {message}", self.YELLOW), file=self.err_stream)

    def error(self, message: str) -> None:
        """Print an error message (red).

        Multi-line messages print the first line after 'Error:' and the rest
        as remediation lines underneath.
        """
        first, _, rest = message.partition("\n")
        print(self._colorize(f"Error: {first}", self.RED), file=self.err_stream)
        if rest:
            print(rest, file=self.err_stream)

    def info(self, message: str) -> None:
        """Print an informational message."""
        if self.quiet:
            return
        print(message, file=self.stream)

    def line(self, message: str) -> None:
        """Print data output, unaffected by --quiet."""
        print(message, file=self.stream)

    def path(self, path: str) -> str:
        """Format a path with color (cyan)."""
        return self._colorize(str(path), self.CYAN)

    def header(self, text: str) -> None:
        """Print a header (bold)."""
        if self.quiet:
            return
        print(self._colorize(text, self.BOLD), file=self.stream)

    def section(self, title: str, lines: list[str]) -> None:
        """Print a bold title followed by indented lines."""
        if self.quiet or not lines:
            return
        self.header(title)
        for line in lines:
            print(f"  {line}", file=self.stream)

    def hint(self, message: str) -> None:
        """Print a dimmed follow-up suggestion."""
        if self.quiet:
            return
        print(self._colorize(message, self.DIM), file=self.stream)

    def created(self, path: str) -> None:
        """Print a 'created' message for a path."""
        if self.quiet:
            return
        print(f"  {self._colorize('+', self.GREEN)} {self.path(path)}", file=self.stream)

    def removed(self, path: str) -> None:
        """Print a 'removed' message for a path."""
        if self.quiet:
            return
        print(f"  {self._colorize('-', self.RED)} {self.path(path)}", file=self.stream)


# Global default output instance
_default_output: Output | None = None


def get_output() -> Output:
    """Get the default output instance."""
    global _default_output
    if _default_output is None:
        _default_output = Output()
    return _default_output


def set_output(output: Output) -> None:
    """Set the default output instance."""
    global _default_output
    _default_output = output

"""Ignore pattern matching for overlay files."""

import fnmatch


def should_ignore(path: str, patterns: list[str]) -> bool:
    """Check if a path should be ignored based on patterns.

    A pattern matches the full path, the filename, or any single path
    segment, so ".obsidian" ignores everything below an .obsidian directory.

    Args:
        path: Path to check (relative, / separated)
        patterns: List of glob patterns

    Returns:
        True if path matches any pattern
    """
    if not patterns:
        return False

    segments = [s for s in path.split("/") if s]
    for pattern in patterns:
        if _matches_pattern(path, pattern):
            return True
        if "/" not in pattern and any(fnmatch.fnmatchcase(s, pattern) for s in segments):
            return True
    return False


def _matches_pattern(path: str, pattern: str) -> bool:
    """Check if path matches a single pattern.

    Supports:
    - * matches any characters except /
    - ** matches any characters including /
    - ? matches single character
    - [seq] matches any character in seq
    """
    if "**" in pattern:
        parts = pattern.split("**")
        if len(parts) == 2:
            prefix, suffix = parts
            prefix = prefix.rstrip("/")
            suffix = suffix.lstrip("/")

            if not prefix and not suffix:
                return True

            path_parts = path.split("/")

            if not prefix:
                # Pattern starts with **: suffix may match at any depth
                for i in range(len(path_parts)):
                    if fnmatch.fnmatchcase("/".join(path_parts[i:]), suffix):
                        return True
                return False

            if not suffix:
                return path == prefix or path.startswith(prefix + "/") or fnmatch.fnmatchcase(path, prefix)

            # Pattern has ** in middle
            if fnmatch.fnmatchcase(path, f"{prefix}/*/{suffix}"):
                return True
            for i in range(len(path_parts)):
                pre = "/".join(path_parts[:i])
                post = "/".join(path_parts[i:])
                if fnmatch.fnmatchcase(pre, prefix) and fnmatch.fnmatchcase(post, suffix):
                    return True
            return False

    if fnmatch.fnmatchcase(path, pattern):
        return True

    # Patterns without / also match against the filename
    if "/" not in pattern:
        filename = path.split("/")[-1]
        if fnmatch.fnmatchcase(filename, pattern):
            return True

    return False


def filter_status_lines(lines: list[str], patterns: list[str]) -> list[str]:
    """Drop `git status --porcelain` lines whose path is ignored.

    Args:
        lines: Porcelain lines ("XY path")
        patterns: List of ignore patterns

    Returns:
        Lines that are not ignored
    """
    if not patterns:
        return lines
    return [line for line in lines if not should_ignore(line[3:], patterns)]

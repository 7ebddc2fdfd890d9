"""
File Utility Functions
======================

Reading and writing rule files. Text is UTF-8 and line endings are kept
as-is so that an unchanged rule exports to a byte-identical file.
"""

from pathlib import Path


def read_rule_file(file_path: str | Path) -> str:
    """
    Read a rule file's contents.

    Args:
        file_path: Path to the rule file

    Returns:
        str: File contents, without a leading byte order mark

    Raises:
        OSError: If the file cannot be read
    """
    with open(file_path, encoding="utf-8-sig", newline="") as handle:
        return handle.read()


def write_rule_file(file_path: str | Path, content: str) -> None:
    """
    Write a rule file, replacing any existing content.

    Args:
        file_path: Path to the file to write
        content: Rule text

    Raises:
        OSError: If the file cannot be written
    """
    with open(file_path, "w", encoding="utf-8", newline="") as handle:
        handle.write(content)


def ensure_directory(path: str | Path) -> Path:
    """Create a directory and its parents if absent."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path

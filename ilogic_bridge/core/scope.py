"""
Scope Resolver
==============

Discovers the ``.ilogicignore`` file governing a document, parses it, and
decides which rule names are excluded from synchronization.

Configuration file format::

    # comment line
    @disable-transfer
    Test*
    ExampleRule

``*`` matches any run of characters, ``?`` exactly one, matching is
case-insensitive and covers the whole rule name.
"""

import re
from functools import lru_cache
from pathlib import Path

from loguru import logger

from ilogic_bridge.config import BridgeSettings, get_settings
from ilogic_bridge.models import ScopeConfig

DISABLE_TRANSFER = "@disable-transfer"
DEFAULT_MAX_DEPTH = 10
MAX_PATTERN_LENGTH = 256


def find_config(
    start_folder: str | Path | None,
    file_name: str = ".ilogicignore",
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Path | None:
    """
    Find the nearest configuration file at or above a folder.

    Args:
        start_folder: Folder the search starts from
        file_name: Configuration file name
        max_depth: Maximum number of folders inspected

    Returns:
        Path | None: Path of the configuration file, or None when the root
        is reached or the depth is exhausted without a match
    """
    if not start_folder:
        return None

    current = Path(start_folder)
    for _ in range(max_depth):
        candidate = current / file_name
        try:
            if candidate.is_file():
                return candidate
        except OSError as error:
            logger.debug(f"Cannot inspect {candidate}: {error}")
            return None
        parent = current.parent
        if parent == current:
            break
        current = parent
    return None


def parse_config(path: str | Path) -> ScopeConfig:
    """
    Parse a configuration file.

    Blank lines and ``#`` comments are skipped, ``@disable-transfer``
    (any case) turns transfer off, every other line is a pattern.
    A read failure is reported through ``read_error`` and never raised.

    Args:
        path: Path of the configuration file

    Returns:
        ScopeConfig: Parsed configuration
    """
    config = ScopeConfig(config_path=Path(path))
    try:
        lines = Path(path).read_text(encoding="utf-8-sig").splitlines()
    except (OSError, UnicodeDecodeError) as error:
        config.read_error = str(error)
        return config

    for line in lines:
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if line.lower() == DISABLE_TRANSFER:
            config.transfer_enabled = False
            continue
        config.patterns.append(line)
    return config


@lru_cache(maxsize=256)
def _compile_pattern(pattern: str) -> re.Pattern | None:
    """Translate a glob to a regex, None for patterns too long to translate."""
    if len(pattern) > MAX_PATTERN_LENGTH:
        return None
    translated = re.escape(pattern).replace(r"\*", ".*").replace(r"\?", ".")
    return re.compile(translated, re.IGNORECASE | re.DOTALL)


def should_ignore(rule_name: str, patterns: list[str]) -> bool:
    """
    Check whether a rule name matches any ignore pattern.

    Args:
        rule_name: Rule name to test
        patterns: Glob patterns from the configuration file

    Returns:
        bool: True if the rule is excluded
    """
    for pattern in patterns:
        compiled = _compile_pattern(pattern)
        if compiled is None:
            # literal comparison for patterns that do not translate
            if rule_name.casefold() == pattern.casefold():
                return True
        elif compiled.fullmatch(rule_name):
            return True
    return False


def resolve_scope(document_path: str | Path, settings: BridgeSettings | None = None) -> ScopeConfig | None:
    """
    Find and parse the configuration governing a document.

    Args:
        document_path: Full path of the document file
        settings: Bridge settings, defaults to the environment

    Returns:
        ScopeConfig | None: Parsed configuration, None when the document is untracked
    """
    settings = settings or get_settings()
    config_path = find_config(
        Path(document_path).parent,
        file_name=settings.IGNORE_FILE,
        max_depth=settings.MAX_SEARCH_DEPTH,
    )
    if config_path is None:
        return None
    return parse_config(config_path)

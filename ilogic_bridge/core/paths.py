"""
Path Mapper
===========

Deterministic mapping from a document to the folder holding its rule files:
``<governing folder>/ilogic/<base name>_<extension>``. The folder name alone
ties a changed file back to an open document.
"""

from pathlib import Path

from ilogic_bridge.models import Document
from ilogic_bridge.utils.file import ensure_directory

RULES_FOLDER = "ilogic"


def folder_name(base_name: str, extension: str) -> str:
    return f"{base_name}_{extension.lstrip('.')}"


def folder_name_for(document: Document) -> str:
    """Folder name of a document, e.g. ``Part1_ipt`` for ``Part1.ipt``."""
    return folder_name(document.base_name, document.extension)


def map_folder(
    governing_folder: str | Path,
    base_name: str,
    extension: str,
    rules_folder: str = RULES_FOLDER,
) -> Path:
    """
    Compute a document's rule folder.

    Args:
        governing_folder: Folder containing the configuration file
        base_name: Document file name without extension
        extension: Document extension, with or without the dot
        rules_folder: Name of the intermediate folder

    Returns:
        Path: ``<governing_folder>/<rules_folder>/<base_name>_<extension>``
    """
    return Path(governing_folder) / rules_folder / folder_name(base_name, extension)


def map_document_folder(
    governing_folder: str | Path,
    document: Document,
    rules_folder: str = RULES_FOLDER,
) -> Path:
    return map_folder(governing_folder, document.base_name, document.extension, rules_folder)


def ensure_folder(path: str | Path) -> Path:
    """Create the rule folder if it does not exist yet."""
    return ensure_directory(path)

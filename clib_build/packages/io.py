"""Manifest loading helpers.

Reads clib.json / package.json from disk and validates them with
ManifestSchema.
"""

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from clib_build.errors import INVALID_MANIFEST, MANIFEST_WRITE_ERROR, ResolverError
from clib_build.packages.schema import ManifestSchema

# Lookup order is fixed: clib.json always wins over package.json.
MANIFEST_NAMES = ("clib.json", "package.json")

# Manifest sections dependencies are saved into
DEPENDENCIES_SECTION = "dependencies"
DEVELOPMENT_SECTION = "development"


def load_json(path: Path) -> dict[str, Any]:
    """Load a JSON file and return its contents as a dict.

    Args:
        path: Path to the JSON file.

    Returns:
        Parsed JSON content as a dictionary.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        ValueError: If the JSON content is not an object.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def parse_manifest_data(data: dict[str, Any], source: str) -> ManifestSchema:
    """Validate manifest data.

    Args:
        data: Decoded manifest content.
        source: Where the data came from, for error messages.

    Returns:
        Validated ManifestSchema instance.

    Raises:
        ResolverError: If the data does not match the schema.
    """
    try:
        return ManifestSchema.model_validate(data)
    except ValidationError as e:
        raise ResolverError(
            f"Invalid manifest {source}: {e.error_count()} validation error(s)",
            code=INVALID_MANIFEST,
        ) from e


def load_manifest(path: Path) -> ManifestSchema:
    """Load and validate a manifest file.

    Args:
        path: Path to clib.json or package.json.

    Returns:
        Validated ManifestSchema instance.

    Raises:
        ResolverError: If the file cannot be read or is not a valid manifest.
    """
    try:
        data = load_json(path)
    except (OSError, ValueError) as e:
        # json.JSONDecodeError is a ValueError
        raise ResolverError(
            f"Cannot read manifest {path}: {e}",
            code=INVALID_MANIFEST,
        ) from e
    return parse_manifest_data(data, str(path))


def find_manifest(directory: Path) -> Path | None:
    """Return the first manifest present in a directory, if any."""
    for name in MANIFEST_NAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def write_dependency_to_file(
    path: Path, repo: str, version: str, section: str = DEPENDENCIES_SECTION
) -> None:
    """Add or update one dependency entry in a manifest file.

    The section is created when missing, and replaced when it is not an
    object. Every other key of the manifest is written back untouched.

    Args:
        path: Manifest file to update.
        repo: Dependency key, 'author/name'.
        version: Version to record.
        section: DEPENDENCIES_SECTION or DEVELOPMENT_SECTION.

    Raises:
        OSError: If the file cannot be read or written.
        ValueError: If the file is not a JSON object.
    """
    data = load_json(path)
    entries = data.get(section)
    if not isinstance(entries, dict):
        entries = {}
        data[section] = entries
    entries[repo] = version
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")


def write_dependency(
    directory: Path, repo: str, version: str, section: str = DEPENDENCIES_SECTION
) -> Path:
    """Save a dependency into the first writable manifest of a directory.

    Manifest names are tried in lookup order; a missing or unreadable
    clib.json falls through to package.json.

    Args:
        directory: Package directory holding the manifest.
        repo: Dependency key, 'author/name'.
        version: Version to record.
        section: DEPENDENCIES_SECTION or DEVELOPMENT_SECTION.

    Returns:
        Path of the manifest that was updated.

    Raises:
        ResolverError: If no manifest in the directory could be updated.
    """
    last_error: Exception | None = None
    for name in MANIFEST_NAMES:
        path = directory / name
        try:
            write_dependency_to_file(path, repo, version, section)
        except (OSError, ValueError) as e:
            last_error = e
            continue
        return path
    raise ResolverError(
        f"Cannot save {repo}@{version} in {directory}: {last_error}",
        code=MANIFEST_WRITE_ERROR,
    )


__all__ = [
    "DEPENDENCIES_SECTION",
    "DEVELOPMENT_SECTION",
    "MANIFEST_NAMES",
    "find_manifest",
    "load_json",
    "load_manifest",
    "parse_manifest_data",
    "write_dependency",
    "write_dependency_to_file",
]

"""Reading and writing the blocks manifest."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .block_interface import Block, Category

logger = logging.getLogger(__name__)

MANIFEST_FILE = "blocks-manifest.json"

_BOOL_FIELDS = ("tests", "subdirectory", "list")
_STRING_FIELDS = ("name", "directory", "category")
_STRING_LIST_FIELDS = ("files", "localDependencies", "dependencies", "devDependencies")


class ManifestParseError(Exception):
    """Raised when a manifest is missing or does not match the manifest schema."""

    pass


def write_manifest(categories: List[Category], output_dir: str) -> Path:
    """
    Write categories to ``output_dir``/blocks-manifest.json.

    Args:
        categories: Categories to persist
        output_dir: Target directory (created when missing)

    Returns:
        Path of the written manifest
    """
    output = Path(output_dir)
    output.mkdir(parents=True, exist_ok=True)
    manifest_path = output / MANIFEST_FILE

    with open(manifest_path, 'w') as f:
        json.dump([category.to_dict() for category in categories], f, indent=2)
        f.write("\n")

    logger.info(f"Wrote manifest with {len(categories)} categories to {manifest_path}")
    return manifest_path


def read_categories(file_path: str) -> List[Category]:
    """
    Load and validate a manifest file.

    Args:
        file_path: Path to a blocks-manifest.json

    Returns:
        List of categories

    Raises:
        ManifestParseError: If the file is unreadable or violates the schema
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise ManifestParseError(f"Manifest not found: {file_path}")

    try:
        with open(file_path, 'r') as f:
            data = json.load(f)
    except ValueError as e:
        raise ManifestParseError(f"Malformed JSON in {file_path}: {e}")
    except (OSError, IOError) as e:
        raise ManifestParseError(f"Error reading {file_path}: {e}")

    return parse_categories(data, str(file_path))


def parse_categories(data: Any, source: Optional[str] = None) -> List[Category]:
    """
    Validate decoded manifest data and build categories from it.

    Args:
        data: Decoded JSON
        source: Where the data came from, for error messages

    Returns:
        List of categories

    Raises:
        ManifestParseError: If the data violates the schema
    """
    where = f" in {source}" if source else ""

    if not isinstance(data, list):
        raise ManifestParseError(f"Manifest must be a list of categories{where}, got {type(data)}")

    categories = []
    for i, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ManifestParseError(f"Category #{i} must be an object{where}")

        name = entry.get("name")
        if not isinstance(name, str):
            raise ManifestParseError(f"Category #{i} is missing a string 'name'{where}")

        blocks = entry.get("blocks")
        if not isinstance(blocks, list):
            raise ManifestParseError(f"Category '{name}' must have a 'blocks' list{where}")

        categories.append(
            Category(
                name=name,
                blocks=[_parse_block(b, f"{name}[{j}]", where) for j, b in enumerate(blocks)],
            )
        )

    return categories


def _parse_block(data: Any, label: str, where: str) -> Block:
    if not isinstance(data, dict):
        raise ManifestParseError(f"Block {label} must be an object{where}")

    for key in _STRING_FIELDS:
        if not isinstance(data.get(key), str):
            raise ManifestParseError(f"Block {label}: '{key}' must be a string{where}")

    for key in _BOOL_FIELDS:
        if not isinstance(data.get(key), bool):
            raise ManifestParseError(f"Block {label}: '{key}' must be a boolean{where}")

    for key in _STRING_LIST_FIELDS:
        value = data.get(key)
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ManifestParseError(f"Block {label}: '{key}' must be a list of strings{where}")

    imports: Dict[str, Any] = data.get("_imports_", {})
    if not isinstance(imports, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in imports.items()
    ):
        raise ManifestParseError(f"Block {label}: '_imports_' must map strings to strings{where}")

    return Block.from_dict(data)

"""Detection of blocks already present in a consumer project."""

import logging
from pathlib import Path
from typing import Dict, List, Mapping

from .block_interface import Block, InstalledBlock
from .registry_config import ConfigParseError, ProjectConfig

logger = logging.getLogger(__name__)


def resolve_paths(paths: Dict[str, str], cwd: str) -> Dict[str, Path]:
    """
    Turn the configured category paths into directories under ``cwd``.

    Args:
        paths: Category -> directory, '*' being the fallback
        cwd: Project root

    Returns:
        Category -> directory joined onto cwd

    Raises:
        ConfigParseError: If there is no `*` fallback
    """
    if "*" not in paths:
        raise ConfigParseError(
            "Paths must include a `*` entry for categories without their own path"
        )

    resolved: Dict[str, Path] = {}
    for category, target in paths.items():
        resolved[category] = Path(cwd) / target
    return resolved


def get_path_for_block(block: Block, resolved_paths: Dict[str, Path]) -> Path:
    """Directory a block of this category is installed into."""
    if block.category in resolved_paths:
        return resolved_paths[block.category]
    return resolved_paths["*"] / block.category


def get_installed(blocks: Mapping[str, Block], config: ProjectConfig, cwd: str) -> List[InstalledBlock]:
    """
    Find the known blocks that already exist in the project.

    Args:
        blocks: Known blocks (values are inspected, keys ignored)
        config: Project configuration holding the path mapping
        cwd: Project root

    Returns:
        Installed blocks, in the order of ``blocks``

    Raises:
        ConfigParseError: If the path mapping cannot be resolved
    """
    resolved_paths = resolve_paths(config.paths, cwd)

    installed: List[InstalledBlock] = []

    for block in blocks.values():
        base_dir = get_path_for_block(block, resolved_paths)

        if block.subdirectory:
            block_path = base_dir / block.name
        else:
            block_path = base_dir / block.files[0]

        if block_path.exists():
            installed.append(InstalledBlock(specifier=block.specifier, path=block_path, block=block))

    logger.debug(f"Found {len(installed)} installed blocks")
    return installed

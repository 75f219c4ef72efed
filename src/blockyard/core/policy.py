"""Inclusion and listing rules for blocks and categories."""

from typing import List

from .registry_config import RegistryConfig


def _allowed(name: str, deny: List[str], allow: List[str]) -> bool:
    # the deny list always wins
    if deny and name in deny:
        return False

    # a non-empty allow list means only those names pass
    if allow:
        return name in allow

    return True


def should_include_block(name: str, config: RegistryConfig) -> bool:
    """Whether a block should be built into the manifest at all."""
    return _allowed(name, config.exclude_blocks, config.include_blocks)


def should_list_block(name: str, config: RegistryConfig) -> bool:
    """Whether a block should be shown to users."""
    return _allowed(name, config.do_not_list_blocks, config.list_blocks)


def should_include_category(name: str, config: RegistryConfig) -> bool:
    return _allowed(name, config.exclude_categories, config.include_categories)


def should_list_category(name: str, config: RegistryConfig) -> bool:
    return _allowed(name, config.do_not_list_categories, config.list_categories)

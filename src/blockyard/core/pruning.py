"""Removal of blocks that are neither listed nor needed by a listed block."""

import logging
from typing import List, Set, Tuple

from .block_interface import Block, Category

logger = logging.getLogger(__name__)


def is_depended_on(specifier: str, categories: List[Category]) -> bool:
    """Whether any block in ``categories`` lists ``specifier`` as a local dependency."""
    for category in categories:
        for block in category.blocks:
            if block.specifier != specifier and specifier in block.local_dependencies:
                return True
    return False


def _required_specifiers(categories: List[Category]) -> Set[str]:
    """Listed blocks plus everything reachable from them through local dependencies."""
    by_specifier = {block.specifier: block for c in categories for block in c.blocks}

    stack: List[Block] = [b for b in by_specifier.values() if b.listed]
    required: Set[str] = {b.specifier for b in stack}

    while stack:
        block = stack.pop()
        for dep in block.local_dependencies:
            if dep in required or dep not in by_specifier:
                continue
            required.add(dep)
            stack.append(by_specifier[dep])

    return required


def prune_unused(categories: List[Category]) -> Tuple[List[Category], int]:
    """
    Drop unlisted blocks that no surviving block depends on.

    A block that was only kept alive by another pruned block is pruned too,
    so the result does not change when pruned again. Categories left without
    blocks are dropped. Order of categories and blocks is preserved.

    Args:
        categories: Built categories

    Returns:
        Tuple of (pruned categories, number of removed blocks)
    """
    required = _required_specifiers(categories)

    pruned: List[Category] = []
    removed = 0

    for category in categories:
        blocks = []
        for block in category.blocks:
            if block.specifier in required:
                blocks.append(block)
            elif logger.isEnabledFor(logging.DEBUG):
                if is_depended_on(block.specifier, categories):
                    logger.debug(f"Pruned {block.specifier}: only needed by pruned blocks")
                else:
                    logger.debug(f"Pruned {block.specifier}: unlisted and unused")
        removed += len(category.blocks) - len(blocks)

        if blocks:
            pruned.append(Category(name=category.name, blocks=blocks))
        else:
            logger.debug(f"Dropped empty category: {category.name}")

    if removed:
        logger.info(f"Pruned {removed} unused blocks")

    return pruned, removed


def prune(categories: List[Category]) -> List[Category]:
    return prune_unused(categories)[0]

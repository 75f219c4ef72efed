"""Resolution of requested block specifiers into a full installation plan."""

import logging
from dataclasses import replace
from typing import Collection, Dict, List, Optional

from .block_interface import InstallingBlock, RemoteBlock
from .registry_providers import RegistryProviderState, join_url, select_provider
from .result import ErrorKind, Result

logger = logging.getLogger(__name__)


def find_block(
    block_specifier: str,
    blocks_map: Dict[str, RemoteBlock],
    repo_paths: List[RegistryProviderState],
) -> Result[RemoteBlock]:
    """
    Look up one specifier in the known remote blocks.

    A specifier starting with a registry location (``github/acme/lib/ui/button``,
    ``./registry/ui/button``) is parsed by that registry's provider. A bare
    ``category/name`` is tried against every configured registry in order and
    the first registry containing it wins.

    Args:
        block_specifier: Specifier as typed by the user or listed as a dependency
        blocks_map: ``registry_url/category/name`` -> RemoteBlock
        repo_paths: Configured registries in priority order

    Returns:
        Result holding the RemoteBlock
    """
    provider = select_provider(block_specifier)

    if provider is not None:
        parsed = provider.parse(block_specifier, fully_qualified=True)
        if parsed.is_err():
            return Result(failure=parsed.unwrap_err())
        spec = parsed.unwrap()
        block = blocks_map.get(join_url(spec.registry_url, spec.specifier))
    else:
        if not repo_paths:
            return Result.err(
                ErrorKind.NO_REPOSITORY_CONFIGURED,
                "If your config doesn't contain repos then you must provide the repo in "
                f"the block specifier ex: `github/<owner>/<repo>/{block_specifier}`!",
            )

        block = None
        for state in repo_paths:
            parsed = state.provider.parse(join_url(state.url, block_specifier), fully_qualified=True)
            if parsed.is_err():
                return Result(failure=parsed.unwrap_err())
            spec = parsed.unwrap()

            block = blocks_map.get(join_url(spec.registry_url, spec.specifier))
            if block is not None:
                break

    if block is None:
        return Result.err(
            ErrorKind.BLOCK_NOT_FOUND, f"Invalid block! `{block_specifier}` does not exist!"
        )

    return Result.ok(block)


def resolve_tree(
    block_specifiers: List[str],
    blocks_map: Dict[str, RemoteBlock],
    repo_paths: List[RegistryProviderState],
    installed: Optional[Collection[str]] = None,
) -> Result[List[InstallingBlock]]:
    """
    Resolve requested blocks and all of their local dependencies.

    Requested blocks come back with ``sub_dependency=False``, blocks pulled in
    through local dependencies with ``sub_dependency=True``. Each block
    appears once, keyed by ``category/name``. A dependency already in
    ``installed`` or already resolved in this call is not resolved again,
    which also stops dependency cycles. Local dependencies are looked up in
    the registry of the block that depends on them.

    Args:
        block_specifiers: Requested specifiers
        blocks_map: ``registry_url/category/name`` -> RemoteBlock
        repo_paths: Configured registries in priority order
        installed: Specifiers to skip when they appear as dependencies

    Returns:
        Result holding the ordered installation plan, or the first failure
    """
    excluded = set(installed or ())
    blocks: Dict[str, InstallingBlock] = {}

    for block_specifier in block_specifiers:
        found = find_block(block_specifier, blocks_map, repo_paths)
        if found.is_err():
            return Result(failure=found.unwrap_err())
        block = found.unwrap()

        specifier = block.specifier
        blocks[specifier] = InstallingBlock(name=block.name, sub_dependency=False, block=block)

        pending = [
            dep for dep in block.local_dependencies
            if dep not in blocks and dep not in excluded
        ]
        if not pending:
            continue

        if block.source_repo:
            pending = [join_url(block.source_repo, dep) for dep in pending]

        sub_deps = resolve_tree(pending, blocks_map, repo_paths, installed=excluded | set(blocks))
        if sub_deps.is_err():
            return sub_deps

        for dep in sub_deps.unwrap():
            if dep.specifier not in blocks:
                blocks[dep.specifier] = replace(dep, sub_dependency=True)

    logger.debug(f"Resolved {len(blocks)} blocks from {len(block_specifiers)} specifiers")
    return Result.ok(list(blocks.values()))

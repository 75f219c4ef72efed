#!/usr/bin/env python3
"""blockyard CLI interface."""
import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from blockyard.core.block_builder import BlockBuildError, BlockGraphBuilder, load_ignore_rules
from blockyard.core.dependency_resolver import resolve_tree
from blockyard.core.installed_scanner import get_installed
from blockyard.core.manifest import ManifestParseError, write_manifest
from blockyard.core.pruning import prune_unused
from blockyard.core.registry_config import (
    PROJECT_CONFIG_FILE,
    REGISTRY_CONFIG_FILE,
    ConfigParseError,
    ConfigParser,
    ProjectConfig,
    RegistryConfig,
)
from blockyard.core.registry_providers import (
    LocalProvider,
    RegistryProviderState,
    fetch_blocks,
    get_provider_state,
    select_provider,
)

logger = logging.getLogger()


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        description='blockyard: Build block registries and resolve blocks to install.'
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Build command
    build_parser = subparsers.add_parser(
        'build', help='Build the blocks manifest of a registry'
    )
    build_parser.add_argument('--cwd', type=Path, default=Path('.'), help='Registry root (default: .)')
    build_parser.add_argument(
        '--config', type=Path, default=None,
        help=f'Registry config file (default: {REGISTRY_CONFIG_FILE} if present)'
    )
    build_parser.add_argument('--dirs', nargs='+', default=None, help='Block directories to build')
    build_parser.add_argument('--output-dir', type=str, default=None, help='Directory to write the manifest to')
    build_parser.add_argument('--allow-subdirectories', action='store_true', default=None,
                              help='Walk directories nested inside block directories')
    build_parser.add_argument('--no-prune', action='store_true',
                              help='Keep unlisted blocks nothing depends on')

    # Resolve command
    resolve_parser = subparsers.add_parser(
        'resolve', help='Resolve blocks and their dependencies into an install plan'
    )
    resolve_parser.add_argument('blocks', nargs='+', help='Block specifiers (category/name or <registry>/category/name)')
    _add_project_arguments(resolve_parser)

    # Installed command
    installed_parser = subparsers.add_parser('installed', help='List blocks already installed in the project')
    _add_project_arguments(installed_parser)

    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.ERROR)

    try:
        if args.command == 'build':
            _run_build(args)
        elif args.command == 'resolve':
            _run_resolve(args)
        elif args.command == 'installed':
            _run_installed(args)
        else:
            parser.print_help()
            sys.exit(1)
    except (ConfigParseError, ManifestParseError) as e:
        print(f'❌ {e}')
        sys.exit(1)


def _add_project_arguments(subparser):
    subparser.add_argument('--cwd', type=Path, default=Path('.'), help='Project root (default: .)')
    subparser.add_argument(
        '--config', type=Path, default=None,
        help=f'Project config file (default: {PROJECT_CONFIG_FILE} if present)'
    )
    subparser.add_argument('--repo', action='append', default=None,
                           help='Registry to use (repeatable, overrides the config repos)')


def _load_registry_config(args) -> RegistryConfig:
    config_path = args.config or args.cwd / REGISTRY_CONFIG_FILE
    if args.config or config_path.exists():
        config = ConfigParser().parse_registry_config(str(config_path))
    else:
        config = RegistryConfig()

    if args.dirs:
        config.dirs = list(args.dirs)
    if args.output_dir is not None:
        config.output_dir = args.output_dir
    if args.allow_subdirectories:
        config.allow_subdirectories = True

    return config


def _load_project_config(args) -> ProjectConfig:
    config_path = args.config or args.cwd / PROJECT_CONFIG_FILE
    if args.config or config_path.exists():
        config = ConfigParser().parse_project_config(str(config_path))
        config.repos = [_anchor_local_repo(repo, args.cwd) for repo in config.repos]
    else:
        config = ProjectConfig()

    if args.repo:
        config.repos = list(args.repo)

    return config


def _anchor_local_repo(repo: str, cwd: Path) -> str:
    """Local registry paths in the project config are relative to the project root."""
    if isinstance(select_provider(repo), LocalProvider) and not Path(repo).is_absolute():
        return os.path.abspath(cwd / repo)
    return repo


def _run_build(args):
    config = _load_registry_config(args)
    if not config.dirs:
        print('❌ No block directories configured. Pass --dirs or set `dirs` in the config.')
        sys.exit(1)

    builder = BlockGraphBuilder(config, cwd=str(args.cwd), ignore=load_ignore_rules(args.cwd))
    try:
        categories = builder.build_all()
    except BlockBuildError as e:
        print(f'❌ Build failed: {e}')
        sys.exit(1)

    if not args.no_prune:
        categories, removed = prune_unused(categories)
        if removed:
            print(f'Pruned {removed} unused blocks')

    for warning in builder.warnings:
        print(str(warning))

    manifest_path = write_manifest(categories, str(args.cwd / config.output_dir))
    block_count = sum(len(c.blocks) for c in categories)
    print(f'✅ Built {block_count} blocks in {len(categories)} categories to {manifest_path}')


def _registry_states(config: ProjectConfig, specifiers: List[str]):
    """Configured registries plus the registries named in fully qualified specifiers."""
    configured: List[RegistryProviderState] = []
    for repo in config.repos:
        state = get_provider_state(repo)
        if state.is_err():
            print(f'❌ {state.unwrap_err()}')
            sys.exit(1)
        configured.append(state.unwrap())

    to_fetch = list(configured)
    for specifier in specifiers:
        provider = select_provider(specifier)
        if provider is None:
            continue
        parsed = provider.parse(specifier, fully_qualified=True)
        if parsed.is_err():
            print(f'❌ {parsed.unwrap_err()}')
            sys.exit(1)
        url = parsed.unwrap().registry_url
        if all(s.url != url for s in to_fetch):
            to_fetch.append(RegistryProviderState(url=url, provider=provider))

    return configured, to_fetch


def _run_resolve(args):
    config = _load_project_config(args)
    configured, to_fetch = _registry_states(config, args.blocks)

    blocks_map = fetch_blocks(to_fetch)
    if blocks_map.is_err():
        print(f'❌ {blocks_map.unwrap_err()}')
        sys.exit(1)
    blocks_map = blocks_map.unwrap()

    installed = set()
    if config.paths:
        installed = {b.specifier for b in get_installed(blocks_map, config, str(args.cwd))}

    result = resolve_tree(args.blocks, blocks_map, configured, installed=installed)
    if result.is_err():
        print(f'❌ {result.unwrap_err()}')
        sys.exit(1)

    print('Blocks to install:')
    for entry in result.unwrap():
        suffix = ' (dependency)' if entry.sub_dependency else ''
        print(f'  + {entry.block.source_repo}/{entry.specifier}{suffix}')
        for dep in entry.block.dependencies:
            print(f'      requires {dep}')


def _run_installed(args):
    config = _load_project_config(args)
    if not config.paths:
        print(f'❌ No `paths` configured in {PROJECT_CONFIG_FILE}.')
        sys.exit(1)

    _, to_fetch = _registry_states(config, [])
    blocks_map = fetch_blocks(to_fetch)
    if blocks_map.is_err():
        print(f'❌ {blocks_map.unwrap_err()}')
        sys.exit(1)

    installed = get_installed(blocks_map.unwrap(), config, str(args.cwd))
    if not installed:
        print('No blocks installed.')
        return

    for entry in installed:
        print(f'  {entry.specifier} -> {entry.path}')


if __name__ == '__main__':
    main()

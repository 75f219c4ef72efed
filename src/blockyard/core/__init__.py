"""blockyard core components"""

from .block_interface import Block, Category, RemoteBlock, InstallingBlock, InstalledBlock
from .result import ErrorKind, Failure, Result
from .registry_config import ConfigParser, ConfigParseError, RegistryConfig, ProjectConfig
from .language_support import LANGUAGES, LanguageResolver, find_language, is_test_file
from .block_builder import BlockGraphBuilder, BlockBuildError, load_ignore_rules
from .pruning import prune, prune_unused
from .manifest import ManifestParseError, read_categories, write_manifest
from .registry_providers import (
    PROVIDERS,
    RegistryProvider,
    RegistryProviderState,
    fetch_blocks,
    get_provider_state,
    select_provider,
)
from .dependency_resolver import resolve_tree
from .installed_scanner import get_installed

__all__ = [
    "Block",
    "Category",
    "RemoteBlock",
    "InstallingBlock",
    "InstalledBlock",
    "ErrorKind",
    "Failure",
    "Result",
    "ConfigParser",
    "ConfigParseError",
    "RegistryConfig",
    "ProjectConfig",
    "LANGUAGES",
    "LanguageResolver",
    "find_language",
    "is_test_file",
    "BlockGraphBuilder",
    "BlockBuildError",
    "load_ignore_rules",
    "prune",
    "prune_unused",
    "ManifestParseError",
    "read_categories",
    "write_manifest",
    "PROVIDERS",
    "RegistryProvider",
    "RegistryProviderState",
    "fetch_blocks",
    "get_provider_state",
    "select_provider",
    "resolve_tree",
    "get_installed",
]

"""ConfigParser for registry build configs and consumer project configs."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

REGISTRY_CONFIG_FILE = "blockyard-build.yaml"
PROJECT_CONFIG_FILE = "blockyard.yaml"


class ConfigParseError(Exception):
    """Raised when a configuration file is missing or malformed."""

    pass


@dataclass
class RegistryConfig:
    """Options controlling how a registry is built."""

    dirs: List[str] = field(default_factory=list)
    """Directories (relative to the project root) holding category directories"""

    output_dir: str = "."
    """Directory the manifest is written to"""

    include_blocks: List[str] = field(default_factory=list)
    exclude_blocks: List[str] = field(default_factory=list)
    list_blocks: List[str] = field(default_factory=list)
    do_not_list_blocks: List[str] = field(default_factory=list)
    include_categories: List[str] = field(default_factory=list)
    exclude_categories: List[str] = field(default_factory=list)
    list_categories: List[str] = field(default_factory=list)
    do_not_list_categories: List[str] = field(default_factory=list)

    exclude_deps: List[str] = field(default_factory=list)
    """Dependency names left out of extracted dependency lists"""

    allow_subdirectories: bool = False
    """Whether directories nested inside a block directory are walked"""


@dataclass
class ProjectConfig:
    """Consumer-side configuration."""

    repos: List[str] = field(default_factory=list)
    """Registry base locations, in lookup order"""

    paths: Dict[str, str] = field(default_factory=dict)
    """Category -> install directory; '*' is the fallback"""


# config key -> RegistryConfig attribute for every list-of-strings option
_REGISTRY_LIST_KEYS = {
    "dirs": "dirs",
    "includeBlocks": "include_blocks",
    "excludeBlocks": "exclude_blocks",
    "listBlocks": "list_blocks",
    "doNotListBlocks": "do_not_list_blocks",
    "includeCategories": "include_categories",
    "excludeCategories": "exclude_categories",
    "listCategories": "list_categories",
    "doNotListCategories": "do_not_list_categories",
    "excludeDeps": "exclude_deps",
}


class ConfigParser:
    """Parser for blockyard YAML (or JSON) configuration files."""

    def parse_registry_config(self, file_path: str) -> RegistryConfig:
        """
        Parse a registry build config file.

        Args:
            file_path: Path to blockyard-build.yaml

        Returns:
            RegistryConfig: Parsed configuration

        Raises:
            ConfigParseError: If the file is unreadable or has invalid fields
        """
        file_path = Path(file_path)
        data = self._load(file_path)
        return self.registry_config_from_dict(data, file_path)

    def registry_config_from_dict(self, data: Dict[str, Any], file_path: Optional[Path] = None) -> RegistryConfig:
        """
        Build a RegistryConfig from already loaded data.

        Args:
            data: Mapping using the camelCase config keys
            file_path: Path for error reporting

        Returns:
            RegistryConfig: Validated configuration
        """
        config = RegistryConfig()

        for key, attr in _REGISTRY_LIST_KEYS.items():
            if key in data:
                setattr(config, attr, self._string_list(data[key], key, file_path))

        if "outputDir" in data:
            output_dir = data["outputDir"]
            if not isinstance(output_dir, str):
                raise ConfigParseError(self._msg("'outputDir' must be a string", file_path))
            config.output_dir = output_dir

        if "allowSubdirectories" in data:
            allow = data["allowSubdirectories"]
            if not isinstance(allow, bool):
                raise ConfigParseError(self._msg("'allowSubdirectories' must be a boolean", file_path))
            config.allow_subdirectories = allow

        return config

    def parse_project_config(self, file_path: str) -> ProjectConfig:
        """
        Parse a consumer project config file.

        Args:
            file_path: Path to blockyard.yaml

        Returns:
            ProjectConfig: Parsed configuration

        Raises:
            ConfigParseError: If the file is unreadable or has invalid fields
        """
        file_path = Path(file_path)
        data = self._load(file_path)

        repos = self._string_list(data.get("repos", []), "repos", file_path)

        paths = data.get("paths", {})
        if not isinstance(paths, dict):
            raise ConfigParseError(self._msg("'paths' must be a mapping", file_path))
        for category, target in paths.items():
            if not isinstance(target, str):
                raise ConfigParseError(
                    self._msg(f"'paths.{category}' must be a string", file_path)
                )

        return ProjectConfig(repos=repos, paths={str(k): v for k, v in paths.items()})

    def _load(self, file_path: Path) -> Dict[str, Any]:
        if not file_path.exists():
            raise ConfigParseError(f"Config file not found: {file_path}")

        try:
            with open(file_path, 'r') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigParseError(f"Malformed config in {file_path}: {e}")
        except (OSError, IOError) as e:
            raise ConfigParseError(f"Error reading {file_path}: {e}")

        # an empty file means "all defaults"
        if data is None:
            return {}

        if not isinstance(data, dict):
            raise ConfigParseError(f"Expected a mapping at {file_path}, got {type(data)}")

        return data

    def _string_list(self, value: Any, key: str, file_path: Optional[Path]) -> List[str]:
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigParseError(self._msg(f"'{key}' must be a list of strings", file_path))
        return list(value)

    @staticmethod
    def _msg(message: str, file_path: Optional[Path]) -> str:
        if file_path:
            return f"{message} in {file_path}"
        return message

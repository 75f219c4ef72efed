"""BlockGraphBuilder for turning block directories into categories of blocks."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from pathspec import GitIgnoreSpec

from .block_interface import Block, Category
from .diagnostics import BuildWarning, WarningSink
from .language_support import (
    TEST_SUFFIXES,
    ResolveContext,
    find_language,
    is_test_file,
)
from .policy import (
    should_include_block,
    should_include_category,
    should_list_block,
    should_list_category,
)
from .registry_config import RegistryConfig
from .result import ErrorKind

logger = logging.getLogger(__name__)


class BlockBuildError(Exception):
    """Raised when the block graph cannot be built correctly."""

    def __init__(self, message: str, kind: Optional[ErrorKind] = None):
        super().__init__(message)
        self.kind = kind


@dataclass
class _Accumulator:
    """Dependency data gathered while walking a subdirectory block."""

    files: List[str] = field(default_factory=list)
    test_files: List[str] = field(default_factory=list)
    local_dependencies: List[str] = field(default_factory=list)
    dependencies: List[str] = field(default_factory=list)
    dev_dependencies: List[str] = field(default_factory=list)
    imports: Dict[str, str] = field(default_factory=dict)

    def merge(self, other: "_Accumulator") -> None:
        self.files.extend(other.files)
        self.test_files.extend(other.test_files)
        _extend_unique(self.local_dependencies, other.local_dependencies)
        _extend_unique(self.dependencies, other.dependencies)
        _extend_unique(self.dev_dependencies, other.dev_dependencies)
        self.imports.update(other.imports)


def _extend_unique(target: List[str], values: List[str]) -> None:
    for value in values:
        if value not in target:
            target.append(value)


def load_ignore_rules(cwd: Path) -> Optional[GitIgnoreSpec]:
    """Compile the project's .gitignore, or return None when there is none."""
    gitignore = Path(cwd) / ".gitignore"
    if not gitignore.is_file():
        return None
    lines = gitignore.read_text(encoding="utf-8", errors="replace").splitlines()
    return GitIgnoreSpec.from_lines(lines)


class BlockGraphBuilder:
    """
    Builds categories of blocks from the configured block directories.

    Every directory directly under a block directory is a category; every
    file or directory inside a category is a block. Dependencies of each
    block are extracted with the language resolver matching its files.

    Soft problems (unsupported files, nested directories that are not
    allowed) are reported as BuildWarning records; anything that would leave
    dependency data incomplete raises BlockBuildError.
    """

    def __init__(
        self,
        config: RegistryConfig,
        cwd: str = ".",
        ignore: Optional[GitIgnoreSpec] = None,
        on_warning: Optional[WarningSink] = None,
    ):
        """
        Args:
            config: Registry build configuration
            cwd: Project root; block directories and paths are relative to it
            ignore: Compiled ignore rules for category directories
            on_warning: Called with every BuildWarning as it is produced
        """
        self.config = config
        self.cwd = Path(cwd)
        self.ignore = ignore
        self.on_warning = on_warning
        self.warnings: List[BuildWarning] = []

    def build_all(self) -> List[Category]:
        """
        Build every directory listed in ``config.dirs``.

        Returns:
            Categories of all directories, in configuration order

        Raises:
            BlockBuildError: On unreadable directories, resolver failures or
                duplicate category names
        """
        categories: List[Category] = []
        seen: Dict[str, str] = {}

        for directory in self.config.dirs:
            for category in self.build(directory):
                if category.name in seen:
                    raise BlockBuildError(
                        f"Duplicate category: {category.name}. "
                        f"Found in {seen[category.name]} and {directory}",
                    )
                seen[category.name] = directory
                categories.append(category)

        logger.info(
            f"Built {len(categories)} categories with "
            f"{sum(len(c.blocks) for c in categories)} blocks"
        )
        return categories

    def build(self, blocks_dir: str) -> List[Category]:
        """
        Build the categories found directly under ``blocks_dir``.

        Args:
            blocks_dir: Block directory, relative to cwd

        Returns:
            List of categories, including empty ones

        Raises:
            BlockBuildError: If the directory cannot be read or a resolver fails
        """
        entries = self._list_dir(self.cwd / blocks_dir)

        categories: List[Category] = []

        for category_dir in entries:
            if not category_dir.is_dir():
                continue

            # trailing '/' so directory-only ignore rules apply
            rel_dir = f"{self._relative(category_dir)}/"
            if self.ignore is not None and self.ignore.match_file(rel_dir):
                logger.debug(f"Ignored category directory: {rel_dir}")
                continue

            if not should_include_category(category_dir.name, self.config):
                logger.debug(f"Excluded category: {category_dir.name}")
                continue

            categories.append(self._build_category(category_dir))

        return categories

    def _build_category(self, category_dir: Path) -> Category:
        category_name = category_dir.name
        list_category = should_list_category(category_name, self.config)
        category = Category(name=category_name)

        entries = self._list_dir(category_dir)
        file_names = [e.name for e in entries if e.is_file()]
        sources: Dict[str, Path] = {}

        for entry in entries:
            if entry.is_file():
                block = self._build_file_block(entry, category_name, list_category, file_names)
            elif entry.is_dir():
                block = self._build_directory_block(entry, category_name, list_category)
            else:
                logger.debug(f"Skipped entry that is neither file nor directory: {entry}")
                continue

            if block is not None:
                if block.name in sources:
                    raise BlockBuildError(
                        f"Duplicate block: {block.specifier}. "
                        f"Found in {self._relative(sources[block.name])} and {self._relative(entry)}",
                    )
                sources[block.name] = entry
                logger.debug(f"Registered block: {block.specifier}")
                category.blocks.append(block)

        return category

    def _build_file_block(
        self, file_path: Path, category_name: str, list_category: bool, siblings: List[str]
    ) -> Optional[Block]:
        file_name = file_path.name
        if is_test_file(file_name):
            return None

        name = _block_name(file_name)

        if not should_include_block(name, self.config):
            return None

        lang = find_language(file_name)
        if lang is None:
            self._warn(
                ErrorKind.UNSUPPORTED_FILE,
                self._relative(file_path),
                f"`*{file_path.suffix}` files are not currently supported!",
            )
            return None

        info = lang.resolve_dependencies(
            ResolveContext(
                file_path=file_path,
                is_subdirectory=False,
                exclude_deps=self.config.exclude_deps,
                dirs=self.config.dirs,
                cwd=self.cwd,
            )
        )
        if info.is_err():
            raise BlockBuildError(str(info.unwrap_err()), ErrorKind.DEPENDENCY_RESOLUTION_FAILED)
        deps = info.unwrap()

        specifier = f"{category_name}/{name}"
        files = [file_name]
        tests_file = next(
            (f for f in siblings if any(f == f"{name}{suffix}" for suffix in TEST_SUFFIXES)),
            None,
        )
        if tests_file is not None:
            files.append(tests_file)

        return Block(
            name=name,
            category=category_name,
            directory=self._relative(file_path.parent),
            files=files,
            subdirectory=False,
            tests=tests_file is not None,
            listed=list_category and should_list_block(name, self.config),
            local_dependencies=[d for d in deps.local_dependencies if d != specifier],
            dependencies=list(deps.dependencies),
            dev_dependencies=list(deps.dev_dependencies),
            imports=dict(deps.imports),
        )

    def _build_directory_block(
        self, block_dir: Path, category_name: str, list_category: bool
    ) -> Optional[Block]:
        name = block_dir.name

        if not should_include_block(name, self.config):
            return None

        specifier = f"{category_name}/{name}"
        acc = self._walk(block_dir, block_dir, specifier)

        files = acc.files + acc.test_files
        if not files:
            logger.debug(f"Skipped block without files: {specifier}")
            return None

        return Block(
            name=name,
            category=category_name,
            directory=self._relative(block_dir),
            files=files,
            subdirectory=True,
            tests=bool(acc.test_files),
            listed=list_category and should_list_block(name, self.config),
            local_dependencies=acc.local_dependencies,
            dependencies=acc.dependencies,
            dev_dependencies=acc.dev_dependencies,
            imports=acc.imports,
        )

    def _walk(self, directory: Path, block_dir: Path, specifier: str) -> _Accumulator:
        """Depth-first walk of a subdirectory block, returning what it found."""
        acc = _Accumulator()

        for entry in self._list_dir(directory):
            relative = entry.relative_to(block_dir).as_posix()

            if entry.is_dir():
                if not self.config.allow_subdirectories:
                    self._warn(
                        ErrorKind.SUBDIRECTORY_DISALLOWED,
                        self._relative(entry),
                        "subdirectories are not allowed!",
                        hint="Allow them with `allowSubdirectories: true` (or --allow-subdirectories).",
                    )
                    continue
                acc.merge(self._walk(entry, block_dir, specifier))
                continue

            if not entry.is_file():
                logger.debug(f"Skipped entry that is neither file nor directory: {entry}")
                continue

            if is_test_file(entry.name):
                acc.test_files.append(relative)
                continue

            lang = find_language(entry.name)
            if lang is None:
                self._warn(
                    ErrorKind.UNSUPPORTED_FILE,
                    self._relative(entry),
                    f"`*{entry.suffix}` files are not currently supported!",
                )
                continue

            info = lang.resolve_dependencies(
                ResolveContext(
                    file_path=entry,
                    is_subdirectory=True,
                    exclude_deps=self.config.exclude_deps,
                    dirs=self.config.dirs,
                    cwd=self.cwd,
                    containing_directory=block_dir,
                )
            )
            if info.is_err():
                raise BlockBuildError(str(info.unwrap_err()), ErrorKind.DEPENDENCY_RESOLUTION_FAILED)
            deps = info.unwrap()

            _extend_unique(acc.local_dependencies, [d for d in deps.local_dependencies if d != specifier])
            _extend_unique(acc.dependencies, deps.dependencies)
            _extend_unique(acc.dev_dependencies, deps.dev_dependencies)
            acc.imports.update(deps.imports)
            acc.files.append(relative)

        return acc

    def _list_dir(self, directory: Path) -> List[Path]:
        try:
            return sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError as e:
            raise BlockBuildError(
                f"Couldn't read the {self._relative(directory)} directory: {e}",
                ErrorKind.IO_UNAVAILABLE,
            )

    def _warn(self, kind: ErrorKind, path: str, message: str, hint: Optional[str] = None) -> None:
        warning = BuildWarning(kind=kind, path=path, message=message, hint=hint)
        logger.warning(str(warning))
        self.warnings.append(warning)
        if self.on_warning is not None:
            self.on_warning(warning)

    def _relative(self, path: Path) -> str:
        return Path(os.path.relpath(path, self.cwd)).as_posix()


def _block_name(file_name: str) -> str:
    """File name without its final extension."""
    return Path(file_name).stem

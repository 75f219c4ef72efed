"""Language resolvers that extract dependency information from block source files.

Each resolver recognizes files by extension and reports, for one file:
- third-party packages it imports (dependencies / dev dependencies)
- other blocks it imports (local dependencies, as ``category/name``)
- a map of every import literal to what it resolved to

Resolvers are kept in the ordered ``LANGUAGES`` list; the first resolver whose
``matches`` accepts a file name handles that file.
"""

import ast
import json
import logging
import os
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Set, Tuple, runtime_checkable

from .result import ErrorKind, Result

logger = logging.getLogger(__name__)


@dataclass
class ResolveContext:
    """Everything a resolver needs to know about the file being analyzed."""

    file_path: Path
    """Path of the source file"""

    is_subdirectory: bool
    """Whether the file belongs to a subdirectory block"""

    exclude_deps: List[str]
    """Package names to leave out of the result"""

    dirs: List[str]
    """Configured block directories, relative to cwd"""

    cwd: Path
    """Project root"""

    containing_directory: Optional[Path] = None
    """Block directory for files of subdirectory blocks"""


@dataclass
class DependencyInfo:
    """Dependencies found in one source file."""

    dependencies: List[str] = field(default_factory=list)
    dev_dependencies: List[str] = field(default_factory=list)
    local_dependencies: List[str] = field(default_factory=list)
    imports: Dict[str, str] = field(default_factory=dict)

    def add_local(self, specifier: str) -> None:
        if specifier not in self.local_dependencies:
            self.local_dependencies.append(specifier)

    def add_package(self, name: str, dev: bool = False) -> None:
        target = self.dev_dependencies if dev else self.dependencies
        if name not in target:
            target.append(name)

    def finalize(self) -> "DependencyInfo":
        # a package used at runtime anywhere is not a dev-only dependency
        self.dev_dependencies = [d for d in self.dev_dependencies if d not in self.dependencies]
        return self


@runtime_checkable
class LanguageResolver(Protocol):
    """Protocol every language resolver implements."""

    name: str
    extensions: Tuple[str, ...]

    def matches(self, filename: str) -> bool:
        ...

    def resolve_dependencies(self, context: ResolveContext) -> Result[DependencyInfo]:
        ...


def _normalize(path: Path) -> Path:
    return Path(os.path.normpath(os.path.abspath(str(path))))


def _strip_extension(entry: str) -> str:
    for ext in SOURCE_EXTENSIONS:
        if entry.endswith(ext):
            return entry[: -len(ext)]
    return entry


def find_block_specifier(target: Path, dirs: List[str], cwd: Path) -> Optional[str]:
    """
    Map a filesystem path to the ``category/name`` of the block containing it.

    Args:
        target: Path an import points at (may lack an extension)
        dirs: Configured block directories, relative to cwd
        cwd: Project root

    Returns:
        The block specifier, or None when the path is not inside a block
    """
    target = _normalize(target)

    for directory in dirs:
        root = _normalize(cwd / directory)
        try:
            parts = target.relative_to(root).parts
        except ValueError:
            continue

        if len(parts) < 2:
            continue

        category, entry = parts[0], parts[1]
        if len(parts) > 2 or (root / category / entry).is_dir():
            return f"{category}/{entry}"
        return f"{category}/{_strip_extension(entry)}"

    return None


class JavaScriptResolver:
    """Resolver for JavaScript and TypeScript modules."""

    name = "javascript"
    extensions = (".ts", ".tsx", ".mts", ".cts", ".js", ".jsx", ".mjs", ".cjs")

    # import x from 'y' / import { a } from "y" / import 'y' / export * from 'y'
    STATIC_IMPORT_RE = re.compile(
        r"""\b(?:import|export)\s+(type\s+)?(?:[\w*$\s{},]*?\s*from\s*)?['"]([^'"\n]+)['"]"""
    )
    # require('y') / import('y')
    CALL_IMPORT_RE = re.compile(r"""\b(?:require|import)\s*\(\s*['"]([^'"\n]+)['"]\s*\)""")
    # comments, template literals and quoted strings, in source order
    TOKEN_RE = re.compile(
        r'''//[^\n]*|/\*.*?\*/|`(?:\\.|[^`\\])*`|'(?:\\.|[^'\\\n])*'|"(?:\\.|[^"\\\n])*"''',
        re.DOTALL,
    )
    # code that a module literal directly follows
    MODULE_POSITION_RE = re.compile(r"""(?:\bfrom|\bimport|\b(?:require|import)\s*\()\s*$""")

    NODE_BUILTINS = frozenset({
        "assert", "async_hooks", "buffer", "child_process", "cluster", "console",
        "constants", "crypto", "dgram", "diagnostics_channel", "dns", "events",
        "fs", "http", "http2", "https", "inspector", "module", "net", "os", "path",
        "perf_hooks", "process", "punycode", "querystring", "readline", "repl",
        "stream", "string_decoder", "timers", "tls", "tty", "url", "util", "v8",
        "vm", "wasi", "worker_threads", "zlib",
    })

    def __init__(self):
        self._versions_cache: Dict[Path, Dict[str, str]] = {}

    def matches(self, filename: str) -> bool:
        return filename.endswith(self.extensions)

    def resolve_dependencies(self, context: ResolveContext) -> Result[DependencyInfo]:
        """
        Extract dependency information from a JavaScript/TypeScript file.

        Args:
            context: File and project information

        Returns:
            Result holding DependencyInfo, or a DEPENDENCY_RESOLUTION_FAILED failure
        """
        try:
            source = Path(context.file_path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            return Result.err(
                ErrorKind.DEPENDENCY_RESOLUTION_FAILED,
                f"Error reading {context.file_path}: {e}",
            )

        source = self._strip_non_code(source)

        modules: List[Tuple[str, bool]] = []
        for match in self.STATIC_IMPORT_RE.finditer(source):
            modules.append((match.group(2), match.group(1) is not None))
        for match in self.CALL_IMPORT_RE.finditer(source):
            modules.append((match.group(1), False))

        info = DependencyInfo()
        versions = self._package_versions(context.cwd)

        for module, type_only in modules:
            if module.startswith("./") or module.startswith("../") or module in (".", ".."):
                target = Path(context.file_path).parent / module
                specifier = find_block_specifier(target, context.dirs, context.cwd)
                if specifier is None:
                    return Result.err(
                        ErrorKind.DEPENDENCY_RESOLUTION_FAILED,
                        f"Import `{module}` in {context.file_path} points outside of the "
                        f"configured block directories ({', '.join(context.dirs)})",
                    )
                info.add_local(specifier)
                info.imports[module] = specifier
                continue

            package = self._package_name(module)
            if module.startswith("node:") or package in self.NODE_BUILTINS:
                continue
            if package in context.exclude_deps:
                continue

            version = versions.get(package)
            resolved = f"{package}@{version}" if version else package
            info.add_package(resolved, dev=type_only)
            info.imports[module] = package

        return Result.ok(info.finalize())

    def _strip_non_code(self, source: str) -> str:
        """Blank out comments and every string that is not a module literal."""
        pieces: List[str] = []
        last = 0

        for match in self.TOKEN_RE.finditer(source):
            code = source[last:match.start()]
            pieces.append(code)
            token = match.group()
            last = match.end()

            if token.startswith("/"):
                pieces.append(" ")
            elif token.startswith("`"):
                pieces.append("``")
            elif self.MODULE_POSITION_RE.search(code):
                pieces.append(token)
            else:
                pieces.append(token[0] * 2)

        pieces.append(source[last:])
        return "".join(pieces)

    @staticmethod
    def _package_name(module: str) -> str:
        parts = module.split("/")
        if module.startswith("@") and len(parts) > 1:
            return "/".join(parts[:2])
        return parts[0]

    def _package_versions(self, cwd: Path) -> Dict[str, str]:
        """Read declared package versions from the project's package.json, if any."""
        cwd = _normalize(cwd)
        if cwd in self._versions_cache:
            return self._versions_cache[cwd]

        versions: Dict[str, str] = {}
        package_json = cwd / "package.json"
        if package_json.is_file():
            try:
                data = json.loads(package_json.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                logger.warning(f"Could not read {package_json}: {e}")
                data = {}
            for section in ("peerDependencies", "devDependencies", "dependencies"):
                entries = data.get(section) or {}
                if isinstance(entries, dict):
                    versions.update({k: v for k, v in entries.items() if isinstance(v, str)})

        self._versions_cache[cwd] = versions
        return versions


class PythonResolver:
    """Resolver for Python modules, based on the ``ast`` module."""

    name = "python"
    extensions = (".py",)

    def matches(self, filename: str) -> bool:
        return filename.endswith(self.extensions)

    def resolve_dependencies(self, context: ResolveContext) -> Result[DependencyInfo]:
        """
        Extract dependency information from a Python file.

        Relative imports are local dependencies, absolute imports of anything
        outside the standard library are package dependencies. Imports guarded
        by ``if TYPE_CHECKING:`` count as dev dependencies.

        Args:
            context: File and project information

        Returns:
            Result holding DependencyInfo, or a DEPENDENCY_RESOLUTION_FAILED failure
        """
        file_path = Path(context.file_path)
        try:
            source = file_path.read_text(encoding="utf-8")
            tree = ast.parse(source, filename=str(file_path))
        except SyntaxError as e:
            return Result.err(
                ErrorKind.DEPENDENCY_RESOLUTION_FAILED,
                f"Failed to parse {file_path}: {e}",
            )
        except (OSError, UnicodeDecodeError) as e:
            return Result.err(
                ErrorKind.DEPENDENCY_RESOLUTION_FAILED,
                f"Error reading {file_path}: {e}",
            )

        type_only = self._type_checking_nodes(tree)
        info = DependencyInfo()

        for node in ast.walk(tree):
            if isinstance(node, ast.Import):
                for alias in node.names:
                    self._add_package(info, alias.name, id(node) in type_only, context)
            elif isinstance(node, ast.ImportFrom):
                if node.level == 0:
                    self._add_package(info, node.module or "", id(node) in type_only, context)
                    continue

                base = file_path.parent
                for _ in range(node.level - 1):
                    base = base.parent
                prefix = "." * node.level

                if node.module:
                    targets = [(prefix + node.module, base.joinpath(*node.module.split(".")))]
                else:
                    targets = [(prefix + alias.name, base / alias.name) for alias in node.names]

                for literal, target in targets:
                    specifier = find_block_specifier(target, context.dirs, context.cwd)
                    if specifier is None:
                        return Result.err(
                            ErrorKind.DEPENDENCY_RESOLUTION_FAILED,
                            f"Import `{literal}` in {file_path} points outside of the "
                            f"configured block directories ({', '.join(context.dirs)})",
                        )
                    info.add_local(specifier)
                    info.imports[literal] = specifier

        return Result.ok(info.finalize())

    @staticmethod
    def _add_package(info: DependencyInfo, module: str, dev: bool, context: ResolveContext) -> None:
        top = module.split(".")[0]
        if not top or top == "__future__" or top in sys.stdlib_module_names:
            return
        if top in context.exclude_deps:
            return
        info.add_package(top, dev=dev)
        info.imports[module] = top

    @staticmethod
    def _type_checking_nodes(tree: ast.AST) -> Set[int]:
        """Collect ids of import nodes nested under ``if TYPE_CHECKING:``."""
        guarded: Set[int] = set()
        for node in ast.walk(tree):
            if not isinstance(node, ast.If):
                continue
            test = node.test
            name = test.id if isinstance(test, ast.Name) else getattr(test, "attr", None)
            if name != "TYPE_CHECKING":
                continue
            for statement in node.body:
                for child in ast.walk(statement):
                    if isinstance(child, (ast.Import, ast.ImportFrom)):
                        guarded.add(id(child))
        return guarded


LANGUAGES: List[LanguageResolver] = [JavaScriptResolver(), PythonResolver()]

SOURCE_EXTENSIONS: Tuple[str, ...] = tuple(
    sorted({ext for lang in LANGUAGES for ext in lang.extensions}, key=len, reverse=True)
)

TEST_SUFFIXES: Tuple[str, ...] = tuple(
    f"{infix}{ext}" for ext in SOURCE_EXTENSIONS for infix in (".test", "_test")
)


def find_language(filename: str) -> Optional[LanguageResolver]:
    """Return the first registered resolver that handles ``filename``."""
    for lang in LANGUAGES:
        if lang.matches(filename):
            return lang
    return None


def is_test_file(filename: str) -> bool:
    return filename.endswith(TEST_SUFFIXES)

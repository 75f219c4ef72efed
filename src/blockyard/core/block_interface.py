"""Block and Category definitions shared by the builder, manifest and resolver."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List


@dataclass
class Block:
    """A distributable unit of code: a single file or a directory subtree."""

    name: str
    """Block name, derived from the file name (without extension) or directory name"""

    category: str
    """Name of the category the block belongs to"""

    directory: str
    """Directory of the block relative to the project root"""

    files: List[str] = field(default_factory=list)
    """Files of the block, test files after source files"""

    subdirectory: bool = False
    """Whether the block is a directory rather than a single file"""

    tests: bool = False
    """Whether the block ships test files"""

    listed: bool = True
    """Whether the block should be shown to users"""

    local_dependencies: List[str] = field(default_factory=list)
    """Specifiers (category/name) of other blocks this block imports"""

    dependencies: List[str] = field(default_factory=list)
    """Third-party packages the block imports"""

    dev_dependencies: List[str] = field(default_factory=list)
    """Third-party packages needed only at development time"""

    imports: Dict[str, str] = field(default_factory=dict)
    """Import literal -> resolved module identifier"""

    @property
    def specifier(self) -> str:
        return f"{self.category}/{self.name}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the manifest field names."""
        return {
            "name": self.name,
            "directory": self.directory,
            "category": self.category,
            "tests": self.tests,
            "subdirectory": self.subdirectory,
            "list": self.listed,
            "files": list(self.files),
            "localDependencies": list(self.local_dependencies),
            "dependencies": list(self.dependencies),
            "devDependencies": list(self.dev_dependencies),
            "_imports_": dict(self.imports),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Block":
        """Build a Block from an already validated manifest entry."""
        return cls(
            name=data["name"],
            category=data["category"],
            directory=data["directory"],
            files=list(data["files"]),
            subdirectory=data["subdirectory"],
            tests=data["tests"],
            listed=data["list"],
            local_dependencies=list(data["localDependencies"]),
            dependencies=list(data["dependencies"]),
            dev_dependencies=list(data["devDependencies"]),
            imports=dict(data.get("_imports_", {})),
        )


@dataclass
class RemoteBlock(Block):
    """A Block read from a registry manifest."""

    source_repo: str = ""
    """Identity (base URL or path) of the registry the block came from"""

    @classmethod
    def from_block(cls, block: Block, source_repo: str) -> "RemoteBlock":
        return cls(
            name=block.name,
            category=block.category,
            directory=block.directory,
            files=list(block.files),
            subdirectory=block.subdirectory,
            tests=block.tests,
            listed=block.listed,
            local_dependencies=list(block.local_dependencies),
            dependencies=list(block.dependencies),
            dev_dependencies=list(block.dev_dependencies),
            imports=dict(block.imports),
            source_repo=source_repo,
        )


@dataclass
class Category:
    """A named group of blocks, one per top-level directory under a configured dir."""

    name: str
    """Category name (directory name)"""

    blocks: List[Block] = field(default_factory=list)
    """Blocks in filesystem enumeration order"""

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "blocks": [block.to_dict() for block in self.blocks]}


@dataclass
class InstallingBlock:
    """A resolved block scheduled for installation."""

    name: str
    """Block name"""

    sub_dependency: bool
    """True when the block is only pulled in by another block"""

    block: RemoteBlock
    """The resolved block"""

    @property
    def specifier(self) -> str:
        return self.block.specifier


@dataclass
class InstalledBlock:
    """A known block whose install location already exists on disk."""

    specifier: str
    path: Path
    block: Block

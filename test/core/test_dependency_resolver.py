"""Unit tests for dependency resolution."""

import pytest

from blockyard.core.block_interface import RemoteBlock
from blockyard.core.dependency_resolver import find_block, resolve_tree
from blockyard.core.registry_providers import (
    GitHubProvider,
    LocalProvider,
    RegistryProviderState,
    join_url,
)
from blockyard.core.result import ErrorKind

ACME = "github/acme/lib"


def remote(repo: str, category: str, name: str, deps=None) -> RemoteBlock:
    """Helper to create a remote block."""
    return RemoteBlock(
        name=name,
        category=category,
        directory=f"blocks/{category}",
        files=[f"{name}.ts"],
        local_dependencies=list(deps or []),
        source_repo=repo,
    )


def blocks_map(*blocks: RemoteBlock):
    return {join_url(b.source_repo, b.specifier): b for b in blocks}


@pytest.fixture
def acme_blocks():
    """button -> icon -> theme in one registry."""
    return blocks_map(
        remote(ACME, "ui", "button", deps=["ui/icon"]),
        remote(ACME, "ui", "icon", deps=["ui/theme"]),
        remote(ACME, "ui", "theme"),
    )


@pytest.fixture
def acme_repo():
    return [RegistryProviderState(url=ACME, provider=GitHubProvider())]


def plan(result):
    assert result.is_ok(), result.failure
    return [(b.specifier, b.sub_dependency) for b in result.unwrap()]


def test_fully_qualified_request_without_repos(acme_blocks):
    """`github/acme/lib/ui/button` pulls in icon and theme with no repos configured."""
    result = resolve_tree([f"{ACME}/ui/button"], acme_blocks, [])

    assert plan(result) == [
        ("ui/button", False),
        ("ui/icon", True),
        ("ui/theme", True),
    ]
    assert all(b.block.source_repo == ACME for b in result.unwrap())


def test_bare_request_uses_configured_repo(acme_blocks, acme_repo):
    result = resolve_tree(["ui/icon"], acme_blocks, acme_repo)

    assert plan(result) == [("ui/icon", False), ("ui/theme", True)]


def test_bare_request_without_repos(acme_blocks):
    result = resolve_tree(["ui/button"], acme_blocks, [])

    assert result.is_err()
    failure = result.unwrap_err()
    assert failure.kind == ErrorKind.NO_REPOSITORY_CONFIGURED
    assert "github/<owner>/<repo>/ui/button" in failure.message


def test_unknown_block(acme_blocks, acme_repo):
    result = resolve_tree(["ui/missing"], acme_blocks, acme_repo)

    assert result.is_err()
    assert result.unwrap_err().kind == ErrorKind.BLOCK_NOT_FOUND
    assert result.unwrap_err().message == "Invalid block! `ui/missing` does not exist!"


def test_invalid_fully_qualified_specifier(acme_blocks):
    """`github/acme/lib/button` names a block without its category and is rejected."""
    result = resolve_tree([f"{ACME}/button"], acme_blocks, [])

    assert result.is_err()
    assert result.unwrap_err().kind == ErrorKind.INVALID_SPECIFIER


def test_missing_dependency_aborts(acme_repo):
    """A failure anywhere in the tree fails the whole resolution."""
    blocks = blocks_map(
        remote(ACME, "ui", "button", deps=["ui/icon"]),
        remote(ACME, "ui", "icon", deps=["ui/gone"]),
    )

    result = resolve_tree(["ui/button"], blocks, acme_repo)

    assert result.is_err()
    assert result.unwrap_err().kind == ErrorKind.BLOCK_NOT_FOUND
    assert "ui/gone" in result.unwrap_err().message


def test_two_block_cycle(acme_repo):
    blocks = blocks_map(
        remote(ACME, "ui", "a", deps=["ui/b"]),
        remote(ACME, "ui", "b", deps=["ui/a"]),
    )

    assert plan(resolve_tree(["ui/a"], blocks, acme_repo)) == [("ui/a", False), ("ui/b", True)]


def test_three_block_cycle(acme_repo):
    blocks = blocks_map(
        remote(ACME, "ui", "a", deps=["ui/b"]),
        remote(ACME, "ui", "b", deps=["ui/c"]),
        remote(ACME, "ui", "c", deps=["ui/a"]),
    )

    assert plan(resolve_tree(["ui/a"], blocks, acme_repo)) == [
        ("ui/a", False),
        ("ui/b", True),
        ("ui/c", True),
    ]


def test_installed_dependencies_skipped(acme_blocks, acme_repo):
    """Installed dependencies are not resolved, nor is anything below them."""
    result = resolve_tree(["ui/button"], acme_blocks, acme_repo, installed={"ui/icon"})

    assert plan(result) == [("ui/button", False)]


def test_installed_block_can_still_be_requested(acme_blocks, acme_repo):
    result = resolve_tree(["ui/theme"], acme_blocks, acme_repo, installed={"ui/theme"})

    assert plan(result) == [("ui/theme", False)]


def test_direct_request_overrides_sub_dependency(acme_blocks, acme_repo):
    """A block both requested and depended on is reported as requested."""
    result = resolve_tree(["ui/button", "ui/icon"], acme_blocks, acme_repo)

    assert plan(result) == [
        ("ui/button", False),
        ("ui/icon", False),
        ("ui/theme", True),
    ]


def test_each_block_once(acme_blocks, acme_repo):
    result = resolve_tree(["ui/icon", "ui/button", "ui/icon"], acme_blocks, acme_repo)

    specifiers = [b.specifier for b in result.unwrap()]
    assert sorted(specifiers) == ["ui/button", "ui/icon", "ui/theme"]
    assert len(specifiers) == len(set(specifiers))


def test_first_registry_wins():
    other = "github/other/lib"
    blocks = blocks_map(remote(other, "ui", "button"), remote(ACME, "ui", "button"))
    repos = [
        RegistryProviderState(url=ACME, provider=GitHubProvider()),
        RegistryProviderState(url=other, provider=GitHubProvider()),
    ]

    found = find_block("ui/button", blocks, repos)

    assert found.unwrap().source_repo == ACME


def test_dependencies_resolved_in_source_registry():
    """Local dependencies come from the registry of the block that needs them."""
    local = "./registry"
    blocks = blocks_map(
        remote(local, "ui", "button", deps=["ui/icon"]),
        remote(local, "ui", "icon"),
        remote(ACME, "ui", "icon"),
    )
    repos = [
        RegistryProviderState(url=ACME, provider=GitHubProvider()),
        RegistryProviderState(url=local, provider=LocalProvider()),
    ]

    result = resolve_tree(["./registry/ui/button"], blocks, repos)

    icon = result.unwrap()[1]
    assert icon.specifier == "ui/icon"
    assert icon.block.source_repo == local

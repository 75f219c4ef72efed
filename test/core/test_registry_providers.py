"""Unit tests for registry providers."""

import json
from unittest.mock import MagicMock, patch
from urllib.error import URLError

import pytest

from blockyard.core.block_interface import Block, Category
from blockyard.core.manifest import MANIFEST_FILE, write_manifest
from blockyard.core.registry_providers import (
    BitbucketProvider,
    GitHubProvider,
    GitLabProvider,
    LocalProvider,
    RegistryProvider,
    fetch_blocks,
    get_provider_state,
    join_url,
    select_provider,
)
from blockyard.core.result import ErrorKind


def sample_categories():
    return [
        Category("ui", [
            Block(name="button", category="ui", directory="blocks/ui", files=["button.ts"],
                  local_dependencies=["ui/icon"]),
            Block(name="icon", category="ui", directory="blocks/ui", files=["icon.ts"]),
        ]),
    ]


def test_join_url():
    assert join_url("github/acme/lib/", "/ui/button") == "github/acme/lib/ui/button"
    assert join_url("/", "ui", "button") == "/ui/button"
    assert join_url("./registry", "", "ui/button") == "./registry/ui/button"


def test_providers_implement_protocol():
    for provider in (GitHubProvider(), GitLabProvider(), BitbucketProvider(), LocalProvider()):
        assert isinstance(provider, RegistryProvider)


@pytest.mark.parametrize(
    "url,provider_type",
    [
        ("github/acme/lib", GitHubProvider),
        ("https://github.com/acme/lib", GitHubProvider),
        ("gitlab/acme/lib", GitLabProvider),
        ("bitbucket/acme/lib", BitbucketProvider),
        ("./registry", LocalProvider),
        ("/srv/registry", LocalProvider),
    ],
)
def test_select_provider(url, provider_type):
    assert isinstance(select_provider(url), provider_type)


def test_select_provider_for_bare_specifier():
    assert select_provider("ui/button") is None


class TestGitHostProvider:
    """Test parsing of code host registry locations."""

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("github/acme/lib", "github/acme/lib"),
            ("github/acme/lib/", "github/acme/lib"),
            ("https://github.com/acme/lib.git", "github/acme/lib"),
            ("https://github.com/acme/lib/tree/next", "github/acme/lib/tree/next"),
        ],
    )
    def test_parse_registry(self, url, expected):
        assert GitHubProvider().parse(url).unwrap().registry_url == expected

    def test_parse_gitlab_tree_url(self):
        parsed = GitLabProvider().parse("https://gitlab.com/acme/lib/-/tree/dev").unwrap()
        assert parsed.registry_url == "gitlab/acme/lib/tree/dev"

    def test_parse_fully_qualified(self):
        parsed = GitHubProvider().parse("github/acme/lib/tree/next/ui/button", fully_qualified=True).unwrap()

        assert parsed.registry_url == "github/acme/lib/tree/next"
        assert parsed.specifier == "ui/button"

    def test_fully_qualified_needs_category_and_name(self):
        result = GitHubProvider().parse("github/acme/lib/button", fully_qualified=True)

        assert result.is_err()
        assert result.unwrap_err().kind == ErrorKind.INVALID_SPECIFIER

    def test_missing_repository(self):
        assert GitHubProvider().parse("github/acme").is_err()

    def test_unexpected_path(self):
        assert GitHubProvider().parse("github/acme/lib/ui").is_err()

    def test_manifest_locations(self):
        assert GitHubProvider().manifest_location("github/acme/lib") == (
            f"https://raw.githubusercontent.com/acme/lib/main/{MANIFEST_FILE}"
        )
        assert GitLabProvider().manifest_location("gitlab/acme/lib/tree/dev") == (
            f"https://gitlab.com/acme/lib/-/raw/dev/{MANIFEST_FILE}"
        )
        assert BitbucketProvider().manifest_location("bitbucket/acme/lib") == (
            f"https://bitbucket.org/acme/lib/raw/master/{MANIFEST_FILE}"
        )

    @patch("blockyard.core.registry_providers.urlopen")
    def test_fetch_manifest(self, mock_urlopen):
        payload = json.dumps([c.to_dict() for c in sample_categories()]).encode("utf-8")
        mock_urlopen.return_value.__enter__.return_value.read.return_value = payload

        result = GitHubProvider().fetch_manifest("github/acme/lib")

        assert result.unwrap() == sample_categories()
        assert mock_urlopen.call_args[0][0].startswith("https://raw.githubusercontent.com/acme/lib/main/")

    @patch("blockyard.core.registry_providers.urlopen")
    def test_fetch_manifest_unreachable(self, mock_urlopen):
        mock_urlopen.side_effect = URLError("no route to host")

        result = GitHubProvider().fetch_manifest("github/acme/lib")

        assert result.is_err()
        assert result.unwrap_err().kind == ErrorKind.IO_UNAVAILABLE

    @patch("blockyard.core.registry_providers.urlopen")
    def test_fetch_manifest_invalid(self, mock_urlopen):
        response = MagicMock()
        response.read.return_value = b'{"not": "a list"}'
        mock_urlopen.return_value.__enter__.return_value = response

        result = GitHubProvider().fetch_manifest("github/acme/lib")

        assert result.is_err()
        assert "Invalid manifest" in result.unwrap_err().message


class TestLocalProvider:
    """Test registries on the local filesystem."""

    def test_parse_fully_qualified(self):
        parsed = LocalProvider().parse("./registry/ui/button", fully_qualified=True).unwrap()

        assert parsed.registry_url == "./registry"
        assert parsed.specifier == "ui/button"

    def test_parse_too_short(self):
        assert LocalProvider().parse("./button", fully_qualified=True).is_err()

    def test_fetch_manifest(self, tmp_path):
        write_manifest(sample_categories(), str(tmp_path))

        assert LocalProvider().fetch_manifest(str(tmp_path)).unwrap() == sample_categories()

    def test_fetch_missing_manifest(self, tmp_path):
        result = LocalProvider().fetch_manifest(str(tmp_path))

        assert result.is_err()
        assert result.unwrap_err().kind == ErrorKind.IO_UNAVAILABLE


def test_get_provider_state():
    state = get_provider_state("https://github.com/acme/lib").unwrap()

    assert state.url == "github/acme/lib"
    assert isinstance(state.provider, GitHubProvider)


def test_get_provider_state_unsupported():
    result = get_provider_state("ftp://example.com/registry")

    assert result.is_err()
    assert result.unwrap_err().kind == ErrorKind.INVALID_SPECIFIER


def test_fetch_blocks(tmp_path):
    """Blocks of every registry are keyed by registry location and specifier."""
    write_manifest(sample_categories(), str(tmp_path))
    state = get_provider_state(str(tmp_path)).unwrap()

    blocks = fetch_blocks([state]).unwrap()

    assert sorted(blocks) == [f"{tmp_path}/ui/button", f"{tmp_path}/ui/icon"]
    button = blocks[f"{tmp_path}/ui/button"]
    assert button.source_repo == str(tmp_path)
    assert button.local_dependencies == ["ui/icon"]


def test_fetch_blocks_failure(tmp_path):
    state = get_provider_state(str(tmp_path / "missing")).unwrap()

    assert fetch_blocks([state]).is_err()

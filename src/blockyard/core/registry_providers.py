"""Registry providers: where registries live and how their specifiers are parsed.

A registry is identified by a base location, for example ``github/acme/lib``
or ``./registry``. A fully qualified block specifier is that location
followed by ``category/name``.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Tuple, runtime_checkable
from urllib.error import URLError
from urllib.request import urlopen

from .block_interface import Category, RemoteBlock
from .manifest import MANIFEST_FILE, ManifestParseError, parse_categories, read_categories
from .result import ErrorKind, Result

logger = logging.getLogger(__name__)


def join_url(*parts: str) -> str:
    """Join URL/path segments with single slashes, keeping a leading '/'."""
    parts = tuple(p for p in parts if p)
    if not parts:
        return ""

    head = parts[0] if parts[0] == "/" else parts[0].rstrip("/")
    rest = [p.strip("/") for p in parts[1:] if p.strip("/")]

    if head == "/":
        return "/" + "/".join(rest)
    return "/".join([head] + rest)


@dataclass
class ParsedSpecifier:
    """A registry location, optionally followed by a block specifier."""

    registry_url: str
    """Canonical registry identity"""

    specifier: Optional[str] = None
    """category/name, present only when parsed as fully qualified"""


@runtime_checkable
class RegistryProvider(Protocol):
    """Protocol every registry provider implements."""

    name: str

    def matches(self, url: str) -> bool:
        ...

    def parse(self, url: str, fully_qualified: bool = False) -> Result[ParsedSpecifier]:
        ...

    def manifest_location(self, url: str) -> str:
        ...

    def fetch_manifest(self, url: str) -> Result[List[Category]]:
        ...


@dataclass
class RegistryProviderState:
    """A configured registry bound to the provider that understands it."""

    url: str
    provider: RegistryProvider


def _invalid(message: str) -> Result:
    return Result.err(ErrorKind.INVALID_SPECIFIER, message)


class GitHostProvider:
    """
    Provider for registries hosted in a git repository on a code host.

    Accepts ``<name>/<owner>/<repo>[/tree/<ref>]`` as well as the host's
    ``https://`` repository URLs; the canonical registry identity is always
    the short form.
    """

    name = ""
    host = ""
    raw_url_template = ""
    default_ref = "main"

    def matches(self, url: str) -> bool:
        return url.startswith(f"{self.name}/") or url.startswith(f"https://{self.host}/")

    def _split(self, url: str) -> Result[Tuple[str, str, Optional[str], List[str]]]:
        if url.startswith(f"https://{self.host}/"):
            path = url[len(f"https://{self.host}/"):]
        elif url.startswith(f"{self.name}/"):
            path = url[len(self.name) + 1:]
        else:
            return _invalid(f"`{url}` is not a {self.name} registry")

        parts = [p for p in path.split("/") if p]
        if len(parts) < 2:
            return _invalid(f"`{url}` must include an owner and a repository")

        owner, repo, rest = parts[0], parts[1], parts[2:]
        if repo.endswith(".git"):
            repo = repo[: -len(".git")]

        # gitlab style '/-/tree/<ref>'
        if rest and rest[0] == "-":
            rest = rest[1:]

        ref = None
        if len(rest) >= 2 and rest[0] in ("tree", "src"):
            ref, rest = rest[1], rest[2:]

        return Result.ok((owner, repo, ref, rest))

    def parse(self, url: str, fully_qualified: bool = False) -> Result[ParsedSpecifier]:
        """
        Parse a registry location, or a registry location plus block specifier.

        Args:
            url: Location to parse
            fully_qualified: Whether ``url`` ends with ``category/name``

        Returns:
            Result holding the canonical registry identity and specifier
        """
        split = self._split(url)
        if split.is_err():
            return Result(failure=split.unwrap_err())
        owner, repo, ref, rest = split.unwrap()

        registry_url = join_url(self.name, owner, repo)
        if ref is not None:
            registry_url = join_url(registry_url, "tree", ref)

        if fully_qualified:
            if len(rest) != 2:
                return _invalid(
                    f"`{url}` is not a valid block specifier, expected "
                    f"`{registry_url}/<category>/<name>`"
                )
            return Result.ok(ParsedSpecifier(registry_url, "/".join(rest)))

        if rest:
            return _invalid(f"`{url}` has an unexpected path after the repository")
        return Result.ok(ParsedSpecifier(registry_url))

    def manifest_location(self, url: str) -> str:
        owner, repo, ref, _ = self._split(url).unwrap()
        return self.raw_url_template.format(
            owner=owner, repo=repo, ref=ref or self.default_ref, file=MANIFEST_FILE
        )

    def fetch_manifest(self, url: str) -> Result[List[Category]]:
        """Download and validate the registry's manifest."""
        split = self._split(url)
        if split.is_err():
            return Result(failure=split.unwrap_err())

        location = self.manifest_location(url)
        logger.debug(f"Fetching manifest {location}")

        try:
            with urlopen(location, timeout=30) as response:
                data = json.loads(response.read().decode("utf-8"))
            return Result.ok(parse_categories(data, location))
        except (URLError, OSError) as e:
            return Result.err(ErrorKind.IO_UNAVAILABLE, f"Error fetching manifest from {location}: {e}")
        except (ValueError, ManifestParseError) as e:
            return Result.err(ErrorKind.IO_UNAVAILABLE, f"Invalid manifest at {location}: {e}")


class GitHubProvider(GitHostProvider):
    name = "github"
    host = "github.com"
    raw_url_template = "https://raw.githubusercontent.com/{owner}/{repo}/{ref}/{file}"


class GitLabProvider(GitHostProvider):
    name = "gitlab"
    host = "gitlab.com"
    raw_url_template = "https://gitlab.com/{owner}/{repo}/-/raw/{ref}/{file}"


class BitbucketProvider(GitHostProvider):
    name = "bitbucket"
    host = "bitbucket.org"
    raw_url_template = "https://bitbucket.org/{owner}/{repo}/raw/{ref}/{file}"
    default_ref = "master"


class LocalProvider:
    """Provider for registries in a directory on the local filesystem."""

    name = "local"

    def matches(self, url: str) -> bool:
        return url.startswith(("./", "../", "/")) or url in (".", "..")

    def parse(self, url: str, fully_qualified: bool = False) -> Result[ParsedSpecifier]:
        trimmed = url if url == "/" else url.rstrip("/")

        if not fully_qualified:
            return Result.ok(ParsedSpecifier(trimmed))

        parts = trimmed.split("/")
        if len(parts) < 3 or not all(parts[-2:]):
            return _invalid(
                f"`{url}` is not a valid block specifier, expected `<path>/<category>/<name>`"
            )
        registry_url = "/".join(parts[:-2]) or "/"
        return Result.ok(ParsedSpecifier(registry_url, "/".join(parts[-2:])))

    def manifest_location(self, url: str) -> str:
        return str(Path(url) / MANIFEST_FILE)

    def fetch_manifest(self, url: str) -> Result[List[Category]]:
        try:
            return Result.ok(read_categories(self.manifest_location(url)))
        except ManifestParseError as e:
            return Result.err(ErrorKind.IO_UNAVAILABLE, str(e))


PROVIDERS: List[RegistryProvider] = [
    GitHubProvider(),
    GitLabProvider(),
    BitbucketProvider(),
    LocalProvider(),
]


def select_provider(url: str) -> Optional[RegistryProvider]:
    """Return the first provider that recognizes ``url``, if any."""
    for provider in PROVIDERS:
        if provider.matches(url):
            return provider
    return None


def get_provider_state(url: str) -> Result[RegistryProviderState]:
    """Bind a configured registry location to its provider."""
    provider = select_provider(url)
    if provider is None:
        return _invalid(f"`{url}` is not a supported registry location")

    parsed = provider.parse(url)
    if parsed.is_err():
        return Result(failure=parsed.unwrap_err())

    return Result.ok(RegistryProviderState(url=parsed.unwrap().registry_url, provider=provider))


def fetch_blocks(states: List[RegistryProviderState]) -> Result[Dict[str, RemoteBlock]]:
    """
    Read every registry's manifest into a single lookup map.

    Args:
        states: Registries to read, in priority order

    Returns:
        Result holding ``registry_url/category/name`` -> RemoteBlock
    """
    blocks: Dict[str, RemoteBlock] = {}

    for state in states:
        manifest = state.provider.fetch_manifest(state.url)
        if manifest.is_err():
            return Result(failure=manifest.unwrap_err())

        for category in manifest.unwrap():
            for block in category.blocks:
                key = join_url(state.url, block.category, block.name)
                blocks[key] = RemoteBlock.from_block(block, state.url)

        logger.debug(f"Loaded manifest of {state.url}")

    return Result.ok(blocks)

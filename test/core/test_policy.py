"""Unit tests for inclusion and listing policy."""

import pytest

from blockyard.core.policy import (
    should_include_block,
    should_include_category,
    should_list_block,
    should_list_category,
)
from blockyard.core.registry_config import RegistryConfig


def test_defaults_allow_everything():
    """With no lists configured every name passes every policy."""
    config = RegistryConfig()
    assert should_include_block("button", config)
    assert should_list_block("button", config)
    assert should_include_category("ui", config)
    assert should_list_category("ui", config)


def test_exclude_wins_over_include():
    config = RegistryConfig(include_blocks=["button"], exclude_blocks=["button"])
    assert should_include_block("button", config) is False


def test_include_list_restricts():
    config = RegistryConfig(include_categories=["ui"])
    assert should_include_category("ui", config) is True
    assert should_include_category("utils", config) is False


def test_list_and_do_not_list():
    config = RegistryConfig(list_blocks=["button", "card"], do_not_list_blocks=["card"])
    assert should_list_block("button", config) is True
    assert should_list_block("card", config) is False
    assert should_list_block("dialog", config) is False


@pytest.mark.parametrize(
    "policy,field",
    [
        (should_include_block, "include_blocks"),
        (should_list_block, "list_blocks"),
        (should_include_category, "include_categories"),
        (should_list_category, "list_categories"),
    ],
)
def test_policies_are_independent(policy, field):
    """Configuring one policy does not affect the others."""
    config = RegistryConfig(**{field: ["only"]})
    assert policy("other", config) is False

    for other in (should_include_block, should_list_block, should_include_category, should_list_category):
        if other is not policy:
            assert other("other", config) is True

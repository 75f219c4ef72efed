"""Unit tests for manifest reading and writing."""

import json

import pytest

from blockyard.core.block_interface import Block, Category
from blockyard.core.manifest import (
    MANIFEST_FILE,
    ManifestParseError,
    parse_categories,
    read_categories,
    write_manifest,
)


def sample_categories():
    return [
        Category("utils", [
            Block(
                name="array",
                category="utils",
                directory="blocks/utils/array",
                files=["index.ts", "index.test.ts"],
                subdirectory=True,
                tests=True,
                listed=True,
                local_dependencies=["utils/string"],
                dependencies=["lodash@^4.0.0"],
                dev_dependencies=["vitest"],
                imports={"../string": "utils/string"},
            ),
        ]),
    ]


def valid_block_dict(**overrides):
    data = sample_categories()[0].blocks[0].to_dict()
    data.update(overrides)
    return data


def test_write_uses_wire_field_names(tmp_path):
    """The manifest is a JSON list of categories with camelCase block fields."""
    path = write_manifest(sample_categories(), str(tmp_path / "out"))

    assert path == tmp_path / "out" / MANIFEST_FILE
    data = json.loads(path.read_text())
    block = data[0]["blocks"][0]
    assert data[0]["name"] == "utils"
    assert block["localDependencies"] == ["utils/string"]
    assert block["devDependencies"] == ["vitest"]
    assert block["list"] is True
    assert block["_imports_"] == {"../string": "utils/string"}


def test_read_written_manifest(tmp_path):
    path = write_manifest(sample_categories(), str(tmp_path))

    assert read_categories(str(path)) == sample_categories()


def test_read_missing_manifest(tmp_path):
    with pytest.raises(ManifestParseError, match="Manifest not found"):
        read_categories(str(tmp_path / MANIFEST_FILE))


def test_read_malformed_json(tmp_path):
    path = tmp_path / MANIFEST_FILE
    path.write_text("[{")

    with pytest.raises(ManifestParseError, match="Malformed JSON"):
        read_categories(str(path))


def test_imports_field_optional():
    data = valid_block_dict()
    del data["_imports_"]

    categories = parse_categories([{"name": "utils", "blocks": [data]}])

    assert categories[0].blocks[0].imports == {}


@pytest.mark.parametrize(
    "data,message",
    [
        ({"name": "utils"}, "must be a list of categories"),
        ([["utils"]], "must be an object"),
        ([{"blocks": []}], "missing a string 'name'"),
        ([{"name": "utils", "blocks": {}}], "must have a 'blocks' list"),
        ([{"name": "utils", "blocks": [valid_block_dict(tests="yes")]}], "'tests' must be a boolean"),
        ([{"name": "utils", "blocks": [valid_block_dict(name=3)]}], "'name' must be a string"),
        ([{"name": "utils", "blocks": [valid_block_dict(files=[1])]}], "'files' must be a list of strings"),
        ([{"name": "utils", "blocks": [valid_block_dict(_imports_=[])]}], "'_imports_' must map"),
    ],
)
def test_schema_violations(data, message):
    with pytest.raises(ManifestParseError, match=message):
        parse_categories(data, "test")

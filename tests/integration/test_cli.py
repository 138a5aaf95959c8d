"""Integration tests for the blockdoc CLI."""

import json

import pytest
from click.testing import CliRunner

from blockdoc import __version__
from blockdoc.cli import cli
from blockdoc.config import loader

CONFIG = """
default_block: paragraph
tools:
  - name: paragraph
    is_default: true
    export: text
    import: text
    mergeable: true
  - name: list
    supports_nesting: true
    export: text
    import: text
"""


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep logs and the default config path inside tmp_path."""
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setattr(loader, "DEFAULT_CONFIG_PATH", tmp_path / "no-config.yaml")
    for variable in ("BLOCKDOC_DEFAULT_BLOCK", "BLOCKDOC_READ_ONLY"):
        monkeypatch.delenv(variable, raising=False)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG)
    return path


@pytest.fixture
def write_document(tmp_path):
    """Write a saved document to a JSON file and return its path."""
    def write(blocks, name="document.json"):
        path = tmp_path / name
        path.write_text(json.dumps({"blocks": blocks}))
        return path

    return write


@pytest.fixture
def runner():
    return CliRunner()


NESTED_BLOCKS = [
    {"id": "l1", "type": "list", "data": {"text": "Groceries"}, "content": ["l3", "l2"]},
    {"id": "l2", "type": "list", "data": {"text": "Apples"}, "parent": "l1"},
    {"id": "l3", "type": "list", "data": {"text": "Pears"}, "parent": "l1"},
    {"id": "p1", "type": "paragraph", "data": {"text": "Done"}},
]


class TestCheckCommand:
    """Test the check command."""

    def test_reports_blocks(self, runner, write_document, config_file):
        """Test that check summarizes block counts and depth."""
        path = write_document(NESTED_BLOCKS)

        result = runner.invoke(cli, ["check", str(path), "--config", str(config_file)])

        assert result.exit_code == 0, result.output
        assert "Blocks: 4  Stubs: 0  Max depth: 1" in result.output
        assert "list" in result.output

    def test_reports_stubs(self, runner, write_document):
        """Test that unknown tools are counted as stubs."""
        path = write_document([
            {"id": "a", "type": "paragraph", "data": {"text": "a"}},
            {"id": "t", "type": "table", "data": {"rows": []}},
        ])

        result = runner.invoke(cli, ["check", str(path)])

        assert result.exit_code == 0, result.output
        assert "Stubs: 1" in result.output
        assert "table" in result.output

    def test_strict_fails_on_stubs(self, runner, write_document):
        """Test that --strict exits non-zero when stubs were needed."""
        path = write_document([{"id": "t", "type": "table", "data": {}}])

        result = runner.invoke(cli, ["check", str(path), "--strict"])

        assert result.exit_code == 1

    def test_strict_passes_without_stubs(self, runner, write_document):
        path = write_document([{"id": "a", "type": "paragraph", "data": {"text": "a"}}])

        result = runner.invoke(cli, ["check", str(path), "--strict"])

        assert result.exit_code == 0, result.output

    def test_invalid_json(self, runner, tmp_path):
        """Test that unparseable documents produce a clean error."""
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        result = runner.invoke(cli, ["check", str(path)])

        assert result.exit_code == 1
        assert "Invalid JSON" in result.output

    def test_invalid_document_shape(self, runner, write_document):
        """Test that blocks without a type are rejected."""
        path = write_document([{"data": {"text": "untyped"}}])

        result = runner.invoke(cli, ["check", str(path)])

        assert result.exit_code == 1
        assert "Invalid document" in result.output

    def test_missing_explicit_config(self, runner, write_document, tmp_path):
        """Test that an explicit config path must exist."""
        path = write_document([])

        result = runner.invoke(cli, ["check", str(path), "--config", str(tmp_path / "absent.yaml")])

        assert result.exit_code == 1
        assert "not found" in result.output


class TestTreeCommand:
    """Test the tree command."""

    def test_prints_outline(self, runner, write_document, config_file):
        """Test that nested blocks are printed under their parent."""
        path = write_document(NESTED_BLOCKS)

        result = runner.invoke(cli, ["tree", str(path), "--config", str(config_file)])

        assert result.exit_code == 0, result.output
        output = result.output
        assert output.index("Groceries") < output.index("Apples") < output.index("Pears") < output.index("Done")

    def test_marks_stubs(self, runner, write_document):
        path = write_document([{"id": "t", "type": "table", "data": {"rows": [[1]]}}])

        result = runner.invoke(cli, ["tree", str(path)])

        assert result.exit_code == 0, result.output
        assert "stub (table)" in result.output


class TestNormalizeCommand:
    """Test the normalize command."""

    def test_repairs_hierarchy(self, runner, write_document, config_file):
        """Test that child lists are rebuilt and dangling parents dropped."""
        blocks = NESTED_BLOCKS + [{"id": "x", "type": "paragraph", "data": {"text": "x"}, "parent": "ghost"}]
        path = write_document(blocks)

        result = runner.invoke(cli, ["normalize", str(path), "--config", str(config_file)])

        assert result.exit_code == 0, result.output
        saved = json.loads(result.output)
        by_id = {block["id"]: block for block in saved["blocks"]}
        assert by_id["l1"]["content"] == ["l2", "l3"]
        assert "parent" not in by_id["x"]
        assert saved["version"] == __version__

    def test_preserves_unknown_blocks(self, runner, write_document):
        """Test that blocks of unregistered tools survive unchanged."""
        table = {"id": "t", "type": "table", "data": {"rows": [[1, 2]]}, "tunes": {"align": "left"}}
        path = write_document([table])

        result = runner.invoke(cli, ["normalize", str(path)])

        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["blocks"] == [table]

    def test_writes_output_file(self, runner, write_document, tmp_path):
        """Test that -o writes the normalized document to a file."""
        path = write_document([{"id": "a", "type": "paragraph", "data": {"text": "a"}}])
        output = tmp_path / "out.json"

        result = runner.invoke(cli, ["normalize", str(path), "-o", str(output)])

        assert result.exit_code == 0, result.output
        assert "Wrote 1 block(s)" in result.output
        assert json.loads(output.read_text())["blocks"] == [
            {"id": "a", "type": "paragraph", "data": {"text": "a"}},
        ]

    def test_empty_document(self, runner, write_document):
        """Test that an empty document normalizes to an empty block list."""
        path = write_document([])

        result = runner.invoke(cli, ["normalize", str(path)])

        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["blocks"] == []


class TestVersion:
    def test_version_option(self, runner):
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

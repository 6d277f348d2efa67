"""Tests for inventory resolution."""

from pathlib import Path

import pytest

from herd.config.inventory import (
    dedupe_targets,
    parse_inventory_line,
    read_inventory_file,
    resolve_inventory,
)
from herd.exceptions import ConfigError, InventoryError
from herd.models import Target


@pytest.fixture
def inventory_file(tmp_path: Path) -> Path:
    """Create sample inventory file."""
    inventory = tmp_path / "hosts.txt"
    inventory.write_text(
        """
# web tier
web1.example.com
web2.example.com:2222   # staging

   # indented comment
db1:22 primary
""",
        encoding="utf-8",
    )
    return inventory


def test_duplicates_collapse_to_first_seen():
    """[a, a, b] resolves to [a, b]."""
    targets = resolve_inventory(["a", "a", "b"])
    assert targets == [Target("a"), Target("b")]


def test_dedupe_uses_host_and_port():
    """Same host on a different port is a different target."""
    targets = dedupe_targets([Target("a"), Target("a", 2222), Target("A", 22)])
    assert targets == [Target("a"), Target("a", 2222)]


def test_comma_delimited_items():
    """CLI items may carry comma-separated lists."""
    targets = resolve_inventory(["a,b:2222", "c", ""])
    assert targets == [Target("a"), Target("b", 2222), Target("c")]


def test_read_inventory_file_skips_comments(inventory_file: Path):
    """Comments, blank lines and trailing tokens are ignored."""
    targets = read_inventory_file(inventory_file)
    assert targets == [
        Target("web1.example.com"),
        Target("web2.example.com", 2222),
        Target("db1"),
    ]


def test_cli_hosts_come_before_file_hosts(inventory_file: Path):
    """CLI hosts first, then file hosts, duplicates dropped."""
    targets = resolve_inventory(["db1", "extra"], inventory_file)
    assert targets == [
        Target("db1"),
        Target("extra"),
        Target("web1.example.com"),
        Target("web2.example.com", 2222),
    ]


def test_empty_inventory_raises():
    """Zero targets is an inventory error."""
    with pytest.raises(InventoryError, match="No target hosts"):
        resolve_inventory([])


def test_comment_only_file_raises(tmp_path: Path):
    """A file with nothing but comments resolves to no hosts."""
    inventory = tmp_path / "empty.txt"
    inventory.write_text("# nothing\n\n")
    with pytest.raises(InventoryError):
        resolve_inventory(None, inventory)


def test_missing_file_raises(tmp_path: Path):
    """Unreadable file is an inventory error."""
    with pytest.raises(InventoryError, match="Failed to read"):
        resolve_inventory(["a"], tmp_path / "missing.txt")


def test_bad_line_reports_line_number(tmp_path: Path):
    """Malformed line names file and line."""
    inventory = tmp_path / "bad.txt"
    inventory.write_text("good\nbad:port\n")
    with pytest.raises(InventoryError, match=r"bad.txt:2"):
        read_inventory_file(inventory)


def test_inventory_error_is_config_error():
    """Inventory failures share the configuration exit path."""
    assert issubclass(InventoryError, ConfigError)


@pytest.mark.parametrize(
    "line,expected",
    [
        ("", None),
        ("   ", None),
        ("# comment", None),
        ("host", "host"),
        ("host:2222 # note", "host:2222"),
        ("  host  extra ", "host"),
    ],
)
def test_parse_inventory_line(line, expected):
    """Line parsing extracts the host token."""
    assert parse_inventory_line(line) == expected

"""Inventory resolution.

Turns host specifiers from the command line and/or an inventory file into
an ordered, deduplicated list of targets.

Inventory file format (UTF-8)::

    # comment
    web1.example.com
    web2.example.com:2222   # trailing comments are ignored
    [fe80::1]:22
"""

import logging
from collections.abc import Iterable
from pathlib import Path

from herd.exceptions import InventoryError
from herd.models import Target

logger = logging.getLogger(__name__)


def parse_inventory_line(line: str) -> str | None:
    """Extract the host token from one inventory line.

    Returns:
        The ``host[:port]`` token, or None for blank and comment lines
    """
    line = line.strip()
    if not line or line.startswith("#"):
        return None
    line = line.split("#", 1)[0].strip()
    if not line:
        return None
    return line.split()[0]


def read_inventory_file(path: Path | str) -> list[Target]:
    """Read targets from an inventory file, in file order.

    Raises:
        InventoryError: If the file cannot be read or a line is malformed
    """
    path = Path(path).expanduser()
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise InventoryError(f"Failed to read inventory file {path}: {e}") from e

    targets = []
    for lineno, raw in enumerate(content.splitlines(), start=1):
        token = parse_inventory_line(raw)
        if token is None:
            continue
        try:
            targets.append(Target.parse(token))
        except ValueError as e:
            raise InventoryError(f"{path}:{lineno}: {e}") from e

    logger.debug("Read %d host(s) from %s", len(targets), path)
    return targets


def parse_host_list(hosts: Iterable[str]) -> list[Target]:
    """Parse command-line host specifiers.

    Each item may itself hold a comma-delimited list.

    Raises:
        InventoryError: If a specifier is malformed
    """
    targets = []
    for item in hosts:
        for spec in item.split(","):
            if not spec.strip():
                continue
            try:
                targets.append(Target.parse(spec))
            except ValueError as e:
                raise InventoryError(f"Invalid host '{spec.strip()}': {e}") from e
    return targets


def dedupe_targets(targets: Iterable[Target]) -> list[Target]:
    """Drop repeated (host, port) pairs, keeping first-seen order."""
    seen: set[Target] = set()
    unique = []
    for target in targets:
        if target in seen:
            logger.debug("Dropping duplicate target %s", target)
            continue
        seen.add(target)
        unique.append(target)
    return unique


def resolve_inventory(
    hosts: Iterable[str] | None = None,
    inventory_path: Path | str | None = None,
) -> list[Target]:
    """Resolve command-line hosts and an inventory file into targets.

    Command-line hosts come first, then inventory file hosts. Duplicates
    collapse to their first occurrence.

    Args:
        hosts: Host specifiers from the command line
        inventory_path: Optional path to a line-oriented inventory file

    Returns:
        Ordered, deduplicated list of targets

    Raises:
        InventoryError: If the file is unreadable or no hosts resolve
    """
    targets = parse_host_list(hosts or [])
    if inventory_path is not None:
        targets.extend(read_inventory_file(inventory_path))

    resolved = dedupe_targets(targets)
    if not resolved:
        raise InventoryError("No target hosts specified. Use --hosts or --inventory.")

    logger.info("Resolved %d target(s)", len(resolved))
    return resolved

"""JSON backups of items and comparison history."""

from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path

import pydantic
import structlog

from elo_arena.core.errors import BackupFormatError
from elo_arena.models import ComparisonRecord, Item

logger = structlog.get_logger()

BACKUP_VERSION = 1


def write_backup(
    path: str | Path,
    items: Sequence[Item],
    history: Sequence[ComparisonRecord],
) -> Path:
    """Write items and history to a JSON file.

    Display refs are kept as they are, so a restore on another machine can be
    followed by ``relink`` to point items at their files again.

    Returns:
        Path of the written file.
    """
    backup_path = Path(path)
    backup_path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "version": BACKUP_VERSION,
        "items": [item.model_dump(mode="json") for item in items],
        "comparisons": [record.model_dump(mode="json") for record in history],
    }
    with backup_path.open("w") as f:
        json.dump(data, f, indent=2)

    logger.info("backup_written", path=str(backup_path), items=len(items), comparisons=len(history))
    return backup_path


def read_backup(path: str | Path) -> tuple[list[Item], list[ComparisonRecord]]:
    """Load items and history from a file written by ``write_backup``.

    Raises:
        FileNotFoundError: If the file does not exist.
        BackupFormatError: If the file is not a valid backup.
    """
    backup_path = Path(path)
    if not backup_path.exists():
        msg = f"Backup file not found: {backup_path}"
        raise FileNotFoundError(msg)

    try:
        with backup_path.open() as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise BackupFormatError(str(backup_path), f"not valid JSON ({e.msg})") from e

    if not isinstance(data, dict):
        raise BackupFormatError(str(backup_path), "top level must be an object")
    if data.get("version") != BACKUP_VERSION:
        raise BackupFormatError(str(backup_path), f"unsupported version {data.get('version')!r}")

    raw_items = data.get("items")
    raw_records = data.get("comparisons")
    if not isinstance(raw_items, list) or not isinstance(raw_records, list):
        raise BackupFormatError(str(backup_path), "'items' and 'comparisons' must be lists")

    try:
        items = [Item.model_validate(entry) for entry in raw_items]
        history = [ComparisonRecord.model_validate(entry) for entry in raw_records]
    except pydantic.ValidationError as e:
        raise BackupFormatError(str(backup_path), str(e)) from e

    logger.info("backup_read", path=str(backup_path), items=len(items), comparisons=len(history))
    return items, history

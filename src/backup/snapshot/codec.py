"""
Codec for snapshot collection files.

A collection file is a JSON array of documents. Values that plain JSON
cannot express (ObjectId, datetime, Decimal128, binary, ...) are written
as MongoDB Extended JSON in relaxed mode, so ``{"$oid": ...}`` and
``{"$date": ...}`` wrappers come back as their BSON types on
import. Files written by the legacy Node exporter, where ids are bare
strings, decode as plain values and are restored verbatim.
"""

import logging
from datetime import timezone
from pathlib import Path
from typing import Any, List, Sequence

from bson import json_util
from bson.errors import BSONError
from bson.json_util import JSONMode, JSONOptions

from ..core.exceptions import SnapshotFormatError
from ..store.base import Document

logger = logging.getLogger(__name__)

SNAPSHOT_JSON_OPTIONS = JSONOptions(
    json_mode=JSONMode.RELAXED,
    tz_aware=True,
    tzinfo=timezone.utc,
)


def dumps_documents(documents: Sequence[Document], indent: int = 2) -> str:
    """Serialize documents to an Extended JSON array."""
    return json_util.dumps(
        list(documents),
        json_options=SNAPSHOT_JSON_OPTIONS,
        indent=indent,
        ensure_ascii=False,
    )


def loads_documents(text: str, source: Any = None) -> List[Document]:
    """
    Parse an Extended JSON array of documents.

    Args:
        text: File content
        source: Path or label used in error messages

    Raises:
        SnapshotFormatError: If the content is not an array of objects
    """
    label = source or "<string>"
    try:
        data = json_util.loads(text, json_options=SNAPSHOT_JSON_OPTIONS)
    except (ValueError, TypeError, BSONError) as e:
        raise SnapshotFormatError(f"Invalid JSON in {label}: {e}", path=source) from e

    if not isinstance(data, list):
        raise SnapshotFormatError(
            f"Expected a JSON array of documents in {label}, got {type(data).__name__}",
            path=source,
        )

    for position, document in enumerate(data):
        if not isinstance(document, dict):
            raise SnapshotFormatError(
                f"Element {position} of {label} is not an object "
                f"({type(document).__name__})",
                path=source,
            )

    return data


def write_documents(path: Path, documents: Sequence[Document]) -> int:
    """
    Write a collection file.

    Returns:
        Number of documents written
    """
    path = Path(path)
    text = dumps_documents(documents)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
    logger.debug(f"Wrote {len(documents)} documents to {path}")
    return len(documents)


def read_documents(path: Path) -> List[Document]:
    """
    Read a whole collection file into memory.

    Raises:
        FileNotFoundError: If the file does not exist
        SnapshotFormatError: If the content is unusable
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    return loads_documents(text, source=path)

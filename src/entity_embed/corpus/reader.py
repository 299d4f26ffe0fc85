"""
Streaming reader for the entity description corpus.

The corpus is UTF-8 text with one entity per line::

    Q42<TAB>douglas adams was an english author ...

Files are read in binary mode so that byte offsets of line starts can be
recorded once and reused by every worker to seek straight to its shard.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, Iterator, Optional, Union

from ..core.exceptions import CorpusError
from ..core.models import EntityRecord


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def parse_record(line: str) -> Optional[EntityRecord]:
    """
    Parse one corpus line.

    Args:
        line: Raw line, with or without its trailing newline

    Returns:
        EntityRecord, or None if the line has no tab separator
    """
    line = line.rstrip("\r\n")
    if "\t" not in line:
        return None
    # Fields after a second tab are ignored
    fields = line.split("\t")
    return EntityRecord(entity_id=fields[0], tokens=fields[1].split())


def _open_corpus(path: PathLike):
    path = Path(path)
    if not path.exists():
        raise CorpusError(f"Corpus file not found: {path}")
    return open(path, "rb")


def count_records(path: PathLike) -> int:
    """Count lines in the corpus, malformed ones included."""
    count = 0
    with _open_corpus(path) as f:
        for _ in f:
            count += 1
    logger.info(f"Counted {count} records in {path}")
    return count


def locate_offsets(path: PathLike, positions: Iterable[int]) -> Dict[int, int]:
    """
    Find the byte offset at which each requested line position starts.

    Positions at or beyond the end of the corpus map to the file size.

    Args:
        path: Corpus path
        positions: Zero-based line positions

    Returns:
        Mapping of position -> byte offset
    """
    wanted = sorted(set(positions))
    offsets: Dict[int, int] = {}
    if not wanted:
        return offsets

    pending = iter(wanted)
    target = next(pending)
    offset = 0
    position = 0

    with _open_corpus(path) as f:
        for line in f:
            while target is not None and target == position:
                offsets[target] = offset
                target = next(pending, None)
            if target is None:
                break
            offset += len(line)
            position += 1

    # Anything left lies past the last line
    while target is not None:
        offsets[target] = offset
        target = next(pending, None)

    return offsets


def iter_lines(
    path: PathLike,
    start_offset: int = 0,
    limit: Optional[int] = None,
) -> Iterator[str]:
    """
    Yield decoded corpus lines starting at a byte offset.

    Args:
        path: Corpus path
        start_offset: Byte offset of the first line to read
        limit: Maximum number of lines to yield (None = to end of file)
    """
    if limit is not None and limit <= 0:
        return

    with _open_corpus(path) as f:
        f.seek(start_offset)
        emitted = 0
        for raw in f:
            yield raw.decode("utf-8", errors="replace")
            emitted += 1
            if limit is not None and emitted >= limit:
                break


def iter_records(path: PathLike) -> Iterator[EntityRecord]:
    """Yield every well-formed record of the corpus."""
    for line in iter_lines(path):
        record = parse_record(line)
        if record is not None:
            yield record

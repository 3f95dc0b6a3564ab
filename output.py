"""
Output writer.

Each scope gets a directory (the output root for the combined schedule, a
slug-named subdirectory per team) holding index.html and schedule.ics.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

PAGE_FILENAME = 'index.html'
FEED_FILENAME = 'schedule.ics'
STATUS_FILENAME = 'status.json'


def write_atomic(path: Path, data: Union[str, bytes]) -> None:
    """Write to a temp file beside path, then rename it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(data, str):
        data = data.encode('utf-8')

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix='.tmp')
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def scope_dir(root: Path, slug: str) -> Path:
    """Directory for a scope; an empty slug is the combined schedule."""
    return root / slug if slug else root


def write_scope(root: Path, slug: str, page: Optional[str] = None,
                feed: Optional[bytes] = None) -> list[Path]:
    """Write whichever of the rendered page and feed are present."""
    directory = scope_dir(root, slug)
    written = []
    if page is not None:
        path = directory / PAGE_FILENAME
        write_atomic(path, page)
        written.append(path)
    if feed is not None:
        path = directory / FEED_FILENAME
        write_atomic(path, feed)
        written.append(path)
    for path in written:
        logger.info(f"Wrote {path}")
    return written


def write_status(root: Path, summary: dict) -> Path:
    path = root / STATUS_FILENAME
    write_atomic(path, json.dumps(summary, indent=2))
    return path

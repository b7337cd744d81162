"""
Utility functions for snapshot stores:
    - atomic JSON writes
    - JSON reads that report corruption uniformly
"""

import json
import logging
import os
import tempfile
from typing import Any, Optional

log = logging.getLogger(__name__)


# ---------- Writing ----------
def atomic_write_json(path: str, data: Any) -> None:
    """
    Write *data* as JSON so that readers never observe a half-written file.

    The document is written to a temporary file in the same directory and
    moved over *path* with :func:`os.replace`.

    Args:
        path (str): Destination file.
        data (Any): JSON-serialisable object.
    """
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=".tmp_", suffix=".json", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
    log.debug("Wrote %s", path)


# ---------- Reading ----------
def read_json(path: str) -> Optional[Any]:
    """
    Read a JSON document.

    Args:
        path (str): File to read.

    Returns:
        Optional[Any]: The decoded document, or None if the file does not exist.

    Raises:
        ValueError: If the file exists but is not valid JSON.
        OSError: If the file exists but cannot be read.
    """
    if not os.path.exists(path):
        return None
    with open(path, "r", encoding="utf-8") as fh:
        return json.load(fh)

from __future__ import annotations

import json
import os
import tempfile
from typing import Iterable, Optional, Tuple, Union

from surfex.errors import PersistenceError
from surfex.logs import logger
from surfex.models import Hunt
from surfex.utils import sanitize_segment

# =====================================
# Result file
# =====================================


def load_hunt(path: str) -> Hunt:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise
    except (OSError, ValueError) as e:
        raise PersistenceError(f"cannot read {path}: {e}") from e
    if not isinstance(data, dict):
        raise PersistenceError(f"cannot read {path}: top level must be an object")
    try:
        return Hunt.from_dict(data)
    except (TypeError, ValueError, AttributeError) as e:
        raise PersistenceError(f"cannot read {path}: {e}") from e


def save_hunt(hunt: Hunt, path: str) -> None:
    """Write hunt to path through a temporary file so a crash never truncates it."""
    directory = os.path.dirname(os.path.abspath(path))
    tmp = None
    try:
        fd, tmp = tempfile.mkstemp(prefix=".surfex-", suffix=".json", dir=directory)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(hunt.to_dict(), f, indent=2, sort_keys=True)
            f.write("\n")
        os.replace(tmp, path)
    except OSError as e:
        if tmp and os.path.exists(tmp):
            os.unlink(tmp)
        raise PersistenceError(f"cannot write {path}: {e}") from e
    logger.info("hunt saved in %s", path)


def create_template(path: str) -> None:
    save_hunt(Hunt(scope=[]), path)


# =====================================
# Raw HTTP responses
# =====================================


def storage_path(workdir: str, host: str, port: int, path: str) -> str:
    segments = [sanitize_segment(s) for s in path.split("/") if s]
    return os.path.join(workdir, "http", sanitize_segment(host), str(port), *segments, "index.http")


def store_response(
    workdir: str,
    host: str,
    port: int,
    path: str,
    status_line: str,
    raw_headers: Iterable[Tuple[Union[bytes, str], Union[bytes, str]]],
    body: Optional[bytes],
) -> str:
    fp = storage_path(workdir, host, port, path)
    os.makedirs(os.path.dirname(fp), exist_ok=True)
    with open(fp, "wb") as f:
        f.write(status_line.encode("latin-1", errors="replace") + b"\r\n")
        for key, value in raw_headers:
            if isinstance(key, str):
                key = key.encode("latin-1", errors="replace")
            if isinstance(value, str):
                value = value.encode("latin-1", errors="replace")
            f.write(key + b": " + value + b"\r\n")
        f.write(b"\r\n")
        f.write(body or b"")
    return fp

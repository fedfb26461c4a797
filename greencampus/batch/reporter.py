"""Звітування: запис JSON, CSV помилок рядків, реекспорт датасету."""

from __future__ import annotations

import csv
import io
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

log = logging.getLogger(__name__)


def _atomic_write(path: str | Path, content: str) -> None:
    """Атомарно записує content у файл path."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(
        dir=str(target.parent),
        prefix=f".{target.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(content)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, target)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


def write_json(data: Any, path: str | Path) -> None:
    _atomic_write(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")
    log.info("Wrote %s", path)


def write_errors_csv(errors: list[str], path: str | Path) -> None:
    """Записує CSV з однією колонкою ``error``, по рядку на кожну відмову."""
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(["error"])
    for message in errors:
        writer.writerow([message])
    _atomic_write(path, buf.getvalue())
    log.info("Wrote row errors → %s (%d rows)", path, len(errors))


def write_text(content: str, path: str | Path) -> None:
    _atomic_write(path, content)
    log.info("Wrote %s", path)

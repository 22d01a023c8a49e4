# timemanager/util/jsonio.py
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any


def read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def write_json_atomic(path: Path, obj: Any, *, pretty: bool = True) -> None:
    """Write JSON next to path, then swap it in so readers never see a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    txt = json.dumps(obj, ensure_ascii=False, indent=2 if pretty else None, sort_keys=True)
    with open(tmp, "w", encoding="utf-8", newline="\n") as f:
        f.write(txt + "\n")
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp, path)

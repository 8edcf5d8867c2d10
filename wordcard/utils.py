"""The errors.jsonl journal and JSON file reading."""
from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def append_jsonl(path: str | Path, record: dict[str, Any]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    line = json.dumps(record, ensure_ascii=False)
    with p.open("a", encoding="utf-8") as f:
        f.write(line + "\n")


def load_json(path: str | Path) -> Any:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def record_error(errors_path: str | Path | None, *, stage: str, message: str) -> None:
    """Append one entry to the errors.jsonl journal (no-op without a path)."""
    if errors_path is None:
        return
    append_jsonl(errors_path, {"at": utc_now_iso(), "stage": stage, "message": message})

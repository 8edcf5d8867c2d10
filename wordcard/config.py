from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .utils import load_json

DEFAULTS: dict[str, dict[str, Any]] = {
    "storage": {"root": "./workspace", "quota_bytes": 5 * 1024 * 1024},
    "cards": {"default_category": "未分類", "max_field_length": 1000},
    "parser": {"default_category": "英単語", "max_text_length": 100_000},
    "ocr": {
        "engine": "easyocr",
        "lang": "en,ja",
        "max_image_size": 1024,
        "max_text_length": 100_000,
        "max_retries": 2,
        "preprocess": True,
        "min_confidence": 0.0,
        "endpoint": "https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-flash:generateContent",
        "timeout": 30.0,
    },
}


@dataclass(frozen=True)
class AppConfig:
    storage: dict[str, Any]
    cards: dict[str, Any]
    parser: dict[str, Any]
    ocr: dict[str, Any]

    @property
    def storage_root(self) -> Path:
        return Path(self.storage["root"])

    @property
    def errors_path(self) -> Path:
        return self.storage_root / "errors.jsonl"


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    merged = dict(DEFAULTS[name])
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ValueError(f"config section must be an object: {name}")
    merged.update(section)
    return merged


def load_config(config_path: str | Path | None = None) -> AppConfig:
    data = load_json(config_path) if config_path is not None else {}
    if not isinstance(data, dict):
        raise ValueError("config root must be an object")
    return AppConfig(
        storage=_section(data, "storage"),
        cards=_section(data, "cards"),
        parser=_section(data, "parser"),
        ocr=_section(data, "ocr"),
    )

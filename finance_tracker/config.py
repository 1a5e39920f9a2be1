from __future__ import annotations

import copy
from pathlib import Path
from typing import Dict

import yaml

DEFAULT_CONFIG: Dict[str, object] = {
    "db_path": "spendwise.db",
    "output_dir": "./reports",
    "log_level": "INFO",
    "loaders": {
        "csv": "finance_tracker.loaders.csv_loader.CSVLoader",
        "xlsx": "finance_tracker.loaders.csv_loader.CSVLoader",
    },
    "output_modules": {
        "csv": "finance_tracker.outputs.csv_output.CSVOutput",
        "html": "finance_tracker.outputs.html_output.HTMLOutput",
        "excel": "finance_tracker.outputs.excel_output.ExcelOutput",
    },
}

CONFIG_PATH = Path("config.yaml")


def _merge_defaults(current: Dict[str, object], defaults: Dict[str, object]) -> Dict[str, object]:
    """Merge missing default keys into the current config recursively."""
    merged = dict(current)
    for key, value in defaults.items():
        if key not in merged:
            merged[key] = copy.deepcopy(value)
        elif isinstance(value, dict) and isinstance(merged[key], dict):
            merged[key] = _merge_defaults(merged[key], value)
    return merged


def load_config(path: str | Path | None = None) -> Dict[str, object]:
    target = Path(path) if path else CONFIG_PATH
    if not target.exists():
        return copy.deepcopy(DEFAULT_CONFIG)
    with target.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {target} must contain a mapping")
    return _merge_defaults(data, DEFAULT_CONFIG)


def save_config(config: Dict[str, object], path: str | Path | None = None) -> None:
    target = Path(path) if path else CONFIG_PATH
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as fp:
        yaml.safe_dump(config, fp, sort_keys=False)

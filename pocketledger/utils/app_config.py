"""Pre-DB bootstrap configuration. No imports from the rest of the package.

Stores preferences that must be known before opening the DB (db_folder,
log_level). Config lives in ~/.pocketledger/config.json so the database
location can itself be configured.
"""
import json
import os
from pathlib import Path

CONFIG_DIR = Path.home() / ".pocketledger"
CONFIG_FILE = CONFIG_DIR / "config.json"


def load_config(path: Path | None = None) -> dict:
    """Returns {} on missing or corrupt file, never raises."""
    try:
        with open(path or CONFIG_FILE, "r", encoding="utf-8") as f:
            data = json.load(f)
        return data if isinstance(data, dict) else {}
    except (OSError, ValueError):
        return {}


def save_config(config: dict, path: Path | None = None) -> None:
    """Creates the config folder if needed; atomic write via .tmp + os.replace()."""
    target = Path(path or CONFIG_FILE)
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp = target.with_suffix(".tmp")
    try:
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(config, f, indent=2)
        os.replace(tmp, target)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise


def get_db_folder(path: Path | None = None) -> str | None:
    """Return config["db_folder"] or None if not set."""
    return load_config(path).get("db_folder")


def set_db_folder(folder: str | None, path: Path | None = None) -> None:
    config = load_config(path)
    if folder is None:
        config.pop("db_folder", None)
    else:
        config["db_folder"] = folder
    save_config(config, path)


def get_log_level(path: Path | None = None) -> str:
    return str(load_config(path).get("log_level", "INFO")).upper()

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional
import os
import sys

from finrecon.domain.errors import ValidationError


@dataclass(frozen=True)
class AppPaths:
    base_dir: Path
    db_path: Path
    logs_dir: Path


def _windows_appdata() -> Path:
    return Path(os.environ.get("APPDATA", str(Path.home() / "AppData" / "Roaming")))


def _mac_app_support() -> Path:
    return Path.home() / "Library" / "Application Support"


def get_app_paths(app_name: str = "FinRecon") -> AppPaths:
    if sys.platform.startswith("win"):
        base = _windows_appdata() / app_name
    elif sys.platform == "darwin":
        base = _mac_app_support() / app_name
    else:
        base = Path.home() / f".{app_name.lower()}"

    logs = base / "logs"
    db = base / "shafaf.db"

    base.mkdir(parents=True, exist_ok=True)
    logs.mkdir(parents=True, exist_ok=True)

    return AppPaths(base_dir=base, db_path=db, logs_dir=logs)


@dataclass(frozen=True)
class EngineSettings:
    db_path: Optional[Path] = None
    api_url: Optional[str] = None
    api_timeout: float = 10.0
    max_parallel_fetches: int = 4
    base_currency: Optional[str] = None
    display_decimals: int = 2
    logs_dir: Optional[Path] = None


def _env_number(environ: Mapping[str, str], key: str, default, cast, minimum):
    raw = (environ.get(key) or "").strip()
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError as e:
        raise ValidationError(f"{key} must be a number. Received: {raw!r}") from e
    if value < minimum:
        raise ValidationError(f"{key} must be >= {minimum}. Received: {value}")
    return value


def load_settings(environ: Optional[Mapping[str, str]] = None) -> EngineSettings:
    """Read engine settings from ``FINRECON_*`` environment variables.

    Without ``FINRECON_DB_PATH`` or ``FINRECON_API_URL`` the per-user
    application directory is used for the database and the logs.
    """
    env = os.environ if environ is None else environ

    api_url = (env.get("FINRECON_API_URL") or "").strip() or None
    db_raw = (env.get("FINRECON_DB_PATH") or "").strip()
    logs_raw = (env.get("FINRECON_LOGS_DIR") or "").strip()

    db_path = Path(db_raw) if db_raw else None
    logs_dir = Path(logs_raw) if logs_raw else None
    if db_path is None and api_url is None:
        paths = get_app_paths()
        db_path = paths.db_path
        logs_dir = logs_dir or paths.logs_dir

    return EngineSettings(
        db_path=db_path,
        api_url=api_url,
        api_timeout=float(_env_number(env, "FINRECON_API_TIMEOUT", 10.0, float, 0.1)),
        max_parallel_fetches=int(_env_number(env, "FINRECON_MAX_PARALLEL_FETCHES", 4, int, 1)),
        base_currency=(env.get("FINRECON_BASE_CURRENCY") or "").strip() or None,
        display_decimals=int(_env_number(env, "FINRECON_DISPLAY_DECIMALS", 2, int, 0)),
        logs_dir=logs_dir,
    )

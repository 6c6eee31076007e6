"""
config.py

Responsibility: Build the immutable `Settings` value passed through every flow.

Precedence (lowest to highest):
1) built-in defaults
2) optional YAML mapping (`REPOBATCH_CONFIG` or `--config`)
3) environment variables (`ACTIVE_ACCOUNT`, `SCAN_ROOT_PATH`, `REPOBATCH_LOG_LEVEL`)

Nothing outside this module reads the process environment.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from repobatch.errors import ConfigError, MissingFileError

DEFAULT_SCAN_ROOT = "~/git"

_PATH_FIELDS = {
    "accounts_file",
    "projects_file",
    "projects_root",
    "scan_root",
    "log_dir",
}

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass(frozen=True)
class Settings:
    active_account: str = ""
    accounts_file: Path = Path("accounts.txt")
    projects_file: Path = Path("projects.txt")
    projects_root: Path = Path(".")
    scan_root: Path = Path(DEFAULT_SCAN_ROOT).expanduser()
    log_dir: Path = Path(".")
    create_log_name: str = "create.log"
    remotes_log_name: str = "remotes.log"
    remotes_debug_log_name: str = "remotes_debug.log"
    export_file_name: str = "exported_projects.txt"
    sync_script: str = "sync.sh"
    sync_command: tuple[str, ...] = ("bash",)
    remote_protocol: str = "https"
    api_base: str = "https://api.github.com"
    settle_timeout: float = 10.0
    settle_initial_delay: float = 0.5
    log_level: str = "INFO"

    @property
    def create_log(self) -> Path:
        return self.log_dir / self.create_log_name

    @property
    def remotes_log(self) -> Path:
        return self.log_dir / self.remotes_log_name

    @property
    def remotes_debug_log(self) -> Path:
        return self.log_dir / self.remotes_debug_log_name

    @property
    def export_file(self) -> Path:
        return self.log_dir / self.export_file_name

    def project_dir(self, name: str) -> Path:
        return self.projects_root / name

    def require_account(self) -> str:
        if not self.active_account:
            raise ConfigError("ACTIVE_ACCOUNT must be set to the primary account")
        return self.active_account


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.is_file():
        raise MissingFileError(path)
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a mapping at the top level: {path}")
    return data


def _coerce(name: str, value: Any) -> Any:
    if name in _PATH_FIELDS:
        return Path(str(value)).expanduser()
    if name == "sync_command":
        if isinstance(value, str):
            return tuple(value.split())
        if isinstance(value, (list, tuple)):
            return tuple(str(v) for v in value)
        raise ConfigError("`sync_command` must be a string or a list of strings")
    if name in ("settle_timeout", "settle_initial_delay"):
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"`{name}` must be a number") from e
    return str(value)


def _validate(settings: Settings) -> Settings:
    level = settings.log_level.upper()
    if level not in _LOG_LEVELS:
        raise ConfigError(f"Invalid log level: {settings.log_level}. Must be one of {list(_LOG_LEVELS)}")
    if settings.remote_protocol not in ("https", "ssh"):
        raise ConfigError("`remote_protocol` must be 'https' or 'ssh'")
    if settings.settle_timeout < 0 or settings.settle_initial_delay <= 0:
        raise ConfigError("settle timings must be positive")
    if not settings.sync_command:
        raise ConfigError("`sync_command` must not be empty")
    return replace(settings, log_level=level)


def load_settings(environ: Mapping[str, str], config_path: str | Path | None = None) -> Settings:
    known = {f.name for f in fields(Settings)}
    values: dict[str, Any] = {}

    path = config_path or environ.get("REPOBATCH_CONFIG")
    if path:
        for key, value in _read_yaml(Path(path)).items():
            if key not in known:
                raise ConfigError(f"Unknown config key: {key}")
            values[key] = _coerce(key, value)

    env_map = {
        "ACTIVE_ACCOUNT": "active_account",
        "SCAN_ROOT_PATH": "scan_root",
        "REPOBATCH_LOG_LEVEL": "log_level",
    }
    for env_key, name in env_map.items():
        raw = environ.get(env_key, "").strip()
        if raw:
            values[name] = _coerce(name, raw)

    return _validate(Settings(**values))

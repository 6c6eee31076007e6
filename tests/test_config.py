from __future__ import annotations

from pathlib import Path

import pytest

from repobatch.config import Settings, load_settings
from repobatch.errors import ConfigError, MissingFileError


def test_defaults_without_environment() -> None:
    s = load_settings({})
    assert s.active_account == ""
    assert s.scan_root == Path("~/git").expanduser()
    assert s.create_log == Path("create.log")
    assert s.sync_command == ("bash",)


def test_environment_overrides(tmp_path: Path) -> None:
    s = load_settings({"ACTIVE_ACCOUNT": "alice", "SCAN_ROOT_PATH": str(tmp_path), "REPOBATCH_LOG_LEVEL": "debug"})
    assert s.active_account == "alice"
    assert s.scan_root == tmp_path
    assert s.log_level == "DEBUG"


def test_yaml_file_then_environment(tmp_path: Path) -> None:
    cfg = tmp_path / "repobatch.yaml"
    cfg.write_text(
        "active_account: carol\n"
        "log_dir: logs\n"
        "sync_command: [python3, -u]\n"
        "settle_timeout: 3\n",
        encoding="utf-8",
    )
    s = load_settings({"ACTIVE_ACCOUNT": "alice", "REPOBATCH_CONFIG": str(cfg)})
    assert s.active_account == "alice"
    assert s.create_log == Path("logs") / "create.log"
    assert s.sync_command == ("python3", "-u")
    assert s.settle_timeout == 3.0


def test_missing_config_file(tmp_path: Path) -> None:
    with pytest.raises(MissingFileError):
        load_settings({}, tmp_path / "missing.yaml")


@pytest.mark.parametrize(
    "body",
    [
        "- just\n- a list\n",
        "unknown_key: 1\n",
        "remote_protocol: ftp\n",
        "log_level: LOUD\n",
        "settle_timeout: soon\n",
    ],
)
def test_invalid_config_is_rejected(tmp_path: Path, body: str) -> None:
    cfg = tmp_path / "c.yaml"
    cfg.write_text(body, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_settings({}, cfg)


def test_require_account() -> None:
    with pytest.raises(ConfigError):
        Settings().require_account()
    assert Settings(active_account="bob").require_account() == "bob"


def test_settings_are_immutable() -> None:
    with pytest.raises(AttributeError):
        Settings().active_account = "x"  # type: ignore[misc]

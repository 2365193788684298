########## ini_config.py

import logging
import os
from configparser import ConfigParser
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

INI_DEFAULT_NAME = "IntuneWinPackager.ini"


@dataclass(frozen=True)
class AppSettings:
    tool_path: Path
    default_output_folder: Optional[Path]

    package_extension: str
    completion_marker: str
    max_output_files: int

    poll_interval_ms: int
    progress_ceiling: int
    terminate_on_cancel: bool

    log_level: int
    memory_log_capacity: int

    flask_host: str
    flask_port: int
    flask_debug: bool


class IniConfig:
    """
    Adapter around ConfigParser and filesystem resolution.
    Keeps INI handling out of the packaging services.
    """

    def __init__(self, ini_path: Path):
        self._ini_path = ini_path
        self._cfg = ConfigParser()
        read_ok = self._cfg.read(str(ini_path), encoding="utf-8-sig")
        if not read_ok:
            raise FileNotFoundError(f"INI file not found or unreadable: {ini_path}")

    @property
    def ini_path(self) -> Path:
        return self._ini_path

    @staticmethod
    def from_env_or_default() -> "IniConfig":
        ini_raw = (os.getenv("APP_INI") or "").strip()
        # If APP_INI is not set, default to repo-root-relative ini location
        ini_path = Path(ini_raw) if ini_raw else (Path(__file__).resolve().parents[2] / INI_DEFAULT_NAME)
        return IniConfig(ini_path)

    def _raw_path(self, section: str, key: str) -> str:
        """
        Reads a filesystem path from INI.
        Tries [paths] and [path] interchangeably for convenience.
        """
        sections_to_try = [section]
        if section == "paths":
            sections_to_try.append("path")
        if section == "path":
            sections_to_try.append("paths")

        for sec in sections_to_try:
            if not self._cfg.has_section(sec):
                continue
            raw = (self._cfg.get(sec, key, fallback="") or "").strip()
            if raw:
                return os.path.expandvars(os.path.expanduser(raw))
        return ""

    def _cfg_path(self, section: str, key: str) -> Path:
        raw = self._raw_path(section, key)
        if not raw:
            raise FileNotFoundError(f"Missing INI value for {key} in section [{section}]")
        return Path(raw).resolve()

    def load_settings(self) -> AppSettings:
        # Required: the packaging tool. Its existence is checked per request (ToolMissing).
        tool_path = self._cfg_path("paths", "tool_path")

        out_raw = self._raw_path("paths", "default_output_folder")
        default_output_folder = Path(out_raw).resolve() if out_raw else None

        # Packaging
        package_extension = (self._cfg.get("packaging", "package_extension", fallback=".intunewin") or "").strip()
        if not package_extension.startswith("."):
            package_extension = "." + package_extension
        # Marker is matched case-sensitively, so only surrounding whitespace is dropped.
        completion_marker = (self._cfg.get("packaging", "completion_marker", fallback="Done!!!") or "").strip()
        max_output_files = self._cfg.getint("packaging", "max_output_files", fallback=5)

        # Execution
        poll_interval_ms = self._cfg.getint("execution", "poll_interval_ms", fallback=350)
        progress_ceiling = self._cfg.getint("execution", "progress_ceiling", fallback=85)
        terminate_on_cancel = self._cfg.getboolean("execution", "terminate_on_cancel", fallback=False)

        # Logging
        level_name = (self._cfg.get("logging", "level", fallback="INFO") or "").strip().upper() or "INFO"
        log_level = logging.getLevelName(level_name)
        memory_log_capacity = self._cfg.getint("logging", "memory_capacity", fallback=500)

        # Flask
        flask_host = (self._cfg.get("flask", "host", fallback="127.0.0.1") or "").strip() or "127.0.0.1"
        flask_port = self._cfg.getint("flask", "port", fallback=5000)
        flask_debug = self._cfg.getboolean("flask", "debug", fallback=False)

        # Validate
        if not isinstance(log_level, int):
            raise ValueError(f"Unknown logging level: {level_name}")
        if poll_interval_ms <= 0:
            raise ValueError("execution.poll_interval_ms must be positive")
        if not 0 < progress_ceiling < 100:
            raise ValueError("execution.progress_ceiling must be between 1 and 99")
        if max_output_files <= 0:
            raise ValueError("packaging.max_output_files must be positive")

        return AppSettings(
            tool_path=tool_path,
            default_output_folder=default_output_folder,
            package_extension=package_extension,
            completion_marker=completion_marker,
            max_output_files=max_output_files,
            poll_interval_ms=poll_interval_ms,
            progress_ceiling=progress_ceiling,
            terminate_on_cancel=terminate_on_cancel,
            log_level=log_level,
            memory_log_capacity=memory_log_capacity,
            flask_host=flask_host,
            flask_port=flask_port,
            flask_debug=flask_debug,
        )

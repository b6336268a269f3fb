"""
Config system - typed application options with layered sources.

Merge order (later overrides earlier):
1. ``ApplicationOptions`` defaults
2. ``.env`` file (read with python-dotenv)
3. Environment variables
4. Explicit overrides

Only keys carrying the prefix (``HERON_`` by default) are read from the
``.env`` file and the environment: ``HERON_PORT=8080`` sets ``port``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from dotenv import dotenv_values


logger = logging.getLogger("heron.config")

_TRUE = frozenset(("1", "true", "yes", "on"))
_FALSE = frozenset(("0", "false", "no", "off", ""))
_LOG_LEVELS = frozenset(("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"))


class ConfigError(Exception):
    """Raised when configuration validation fails."""
    pass


@dataclass
class ApplicationOptions:
    """Options accepted by ``Application`` and ``ApplicationFactory.create``."""

    host: str = "127.0.0.1"
    port: int = 3000
    cors: bool = True
    global_prefix: str = ""
    debug: bool = False
    log_level: str = "INFO"

    def __post_init__(self):
        if not (0 <= self.port <= 65535):
            raise ConfigError(f"port must be between 0 and 65535, got {self.port}")
        self.log_level = str(self.log_level).upper()
        if self.log_level not in _LOG_LEVELS:
            raise ConfigError(f"Unknown log level {self.log_level!r}")

    def merge(self, **overrides: Any) -> "ApplicationOptions":
        unknown = set(overrides) - {f.name for f in fields(self)}
        if unknown:
            raise ConfigError(f"Unknown option(s): {', '.join(sorted(unknown))}")
        return replace(self, **overrides)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def parse_bool(value: Union[str, bool, int]) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"Cannot parse {value!r} as a boolean")


def _coerce(name: str, kind: Any, value: Any) -> Any:
    if kind in (bool, "bool"):
        return parse_bool(value)
    if kind in (int, "int"):
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigError(f"{name} must be an integer, got {value!r}") from None
    return "" if value is None else str(value)


class ConfigLoader:
    """
    Loads and merges ``ApplicationOptions`` from defaults, a ``.env`` file,
    the environment and explicit overrides.
    """

    def __init__(self, env_prefix: str = "HERON_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}
        self._types = {f.name: f.type for f in fields(ApplicationOptions)}

    @classmethod
    def load(
        cls,
        env_file: Optional[Union[str, Path]] = ".env",
        env_prefix: str = "HERON_",
        overrides: Optional[Mapping[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> ApplicationOptions:
        """
        Build options from every source.

        Args:
            env_file: ``.env`` path; skipped when None or missing
            env_prefix: prefix for ``.env`` and environment keys
            overrides: highest-precedence values, keyed by option name
            environ: environment mapping (defaults to ``os.environ``)
        """
        loader = cls(env_prefix=env_prefix)
        if env_file is not None:
            loader._load_env_file(env_file)
        loader._load_from_env(os.environ if environ is None else environ)
        if overrides:
            for key, value in overrides.items():
                loader._set(key, value)
        return loader.build()

    def _load_env_file(self, path: Union[str, Path]) -> None:
        env_path = Path(path)
        if not env_path.exists():
            logger.debug("No env file at %s", env_path)
            return
        self._load_mapping(dotenv_values(env_path))

    def _load_from_env(self, environ: Mapping[str, str]) -> None:
        self._load_mapping(environ)

    def _load_mapping(self, values: Mapping[str, Optional[str]]) -> None:
        for key, value in values.items():
            if not key.startswith(self.env_prefix):
                continue
            name = key[len(self.env_prefix):].lower()
            if name not in self._types:
                logger.debug("Ignoring unknown config key %s", key)
                continue
            self._set(name, value)

    def _set(self, name: str, value: Any) -> None:
        if name not in self._types:
            raise ConfigError(f"Unknown option {name!r}")
        self.config_data[name] = _coerce(name, self._types[name], value)

    def build(self) -> ApplicationOptions:
        return ApplicationOptions(**self.config_data)

    def get(self, name: str, default: Any = None) -> Any:
        return self.config_data.get(name, default)


def configure_logging(level: Union[str, int] = "INFO") -> logging.Logger:
    """
    Install a stream handler on the ``heron`` logger (once) and set its
    level. Returns the logger.
    """
    root = logging.getLogger("heron")
    if not any(getattr(h, "_heron_handler", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
        handler._heron_handler = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)
    return root

"""Project config file support.

A project may carry ``livespec.yaml``, ``livespec.yml`` or ``livespec.toml``
at its root.  Settings live at the top level or under a ``livespec`` table;
keyword overrides (CLI flags, ``ProjectSession`` arguments) win over both.
"""

from __future__ import annotations

import tomllib
from dataclasses import fields
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from livespec._errors import ConfigError
from livespec.config import LiveSpecConfig

if TYPE_CHECKING:
    from collections.abc import Callable

_SETTINGS = frozenset(f.name for f in fields(LiveSpecConfig)) - {"root"}
_NUMBERS = frozenset(f.name for f in fields(LiveSpecConfig) if type(f.default) is int)
_TEXTS = frozenset(f.name for f in fields(LiveSpecConfig) if type(f.default) is str)


def _yaml(text: str) -> Any:
    return yaml.safe_load(text)


_READERS: tuple[tuple[str, Callable[[str], Any], tuple[type[Exception], ...]], ...] = (
    ("livespec.yaml", _yaml, (yaml.YAMLError,)),
    ("livespec.yml", _yaml, (yaml.YAMLError,)),
    ("livespec.toml", tomllib.loads, (tomllib.TOMLDecodeError,)),
)


def load_config(root: Path, **overrides: object) -> LiveSpecConfig:
    """Build the config for ``root``.

    ``None`` overrides are skipped so unset CLI flags keep file values.
    An unreadable or malformed config file counts as absent.

    Raises:
        ConfigError: If a setting has the wrong type or a negative number.

    """
    settings = read_config_file(root)
    settings.update((k, v) for k, v in overrides.items() if v is not None)
    checked = {name: _coerce(name, value) for name, value in settings.items()}
    return LiveSpecConfig(root=root, **checked)  # type: ignore[arg-type]


def _coerce(name: str, value: object) -> object:
    if name in _NUMBERS:
        if isinstance(value, bool) or not isinstance(value, int | str):
            raise _bad(name, value, "a whole number")
        try:
            number = int(value)
        except ValueError:
            raise _bad(name, value, "a whole number") from None
        if number < 0:
            raise _bad(name, value, "zero or more")
        return number
    if name in _TEXTS:
        if not isinstance(value, str):
            raise _bad(name, value, "a string")
        return value
    if name == "bridge_script":
        if not isinstance(value, str | Path):
            raise _bad(name, value, "a path")
        return Path(value)
    if name == "host_origins":
        if isinstance(value, str):
            return (value,)
        if isinstance(value, list | tuple) and all(isinstance(o, str) for o in value):
            return tuple(value)
        raise _bad(name, value, "an origin or a list of origins")
    return value


def _bad(name: str, value: object, expected: str) -> ConfigError:
    return ConfigError(f"{name} must be {expected}, got {value!r}")


def read_config_file(root: Path) -> dict[str, object]:
    """Known settings from the first config file found in ``root``."""
    for name, parse, errors in _READERS:
        path = root / name
        if not path.is_file():
            continue
        try:
            data = parse(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, *errors):
            return {}
        return _known_settings(data)
    return {}


def _known_settings(data: object) -> dict[str, object]:
    if not isinstance(data, dict):
        return {}
    section = data.get("livespec")
    merged = {k: v for k, v in data.items() if k != "livespec"}
    if isinstance(section, dict):
        merged.update(section)
    return {k: v for k, v in merged.items() if k in _SETTINGS}

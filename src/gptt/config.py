"""
Project configuration for gptt.

Effective settings come from two places: the command line and an optional
``.gpt.json`` in the working directory.  List-valued settings from the file
are placed *before* the command-line values; ``out`` from the command line
wins over the file.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .core import ConfigReadError

CONFIG_FILE_NAME = ".gpt.json"

# Used for ``optional`` only when neither the file nor the CLI sets it.
DEFAULT_OPTIONAL_PATTERNS: List[str] = ["./**"]

_LIST_FIELDS = ("in", "optional", "exclude")


@dataclass
class Config:
    """Effective configuration for a single run.

    Attributes
    ----------
    out: Optional[str]
        Where to write the prompt.  ``None`` prints it to stdout.
    inputs: List[str]
        Glob patterns for files that are always included.
    optional: List[str]
        Glob patterns for files included only when the prompt names them.
    exclude: List[str]
        Glob patterns whose matches are removed from both sets.
    """

    out: Optional[str] = None
    inputs: List[str] = field(default_factory=list)
    optional: List[str] = field(default_factory=lambda: list(DEFAULT_OPTIONAL_PATTERNS))
    exclude: List[str] = field(default_factory=list)

    @staticmethod
    def load(
        base_dir: Path,
        cli_out: Optional[str] = None,
        cli_in: Optional[List[str]] = None,
        cli_optional: Optional[List[str]] = None,
        cli_exclude: Optional[List[str]] = None,
    ) -> "Config":
        """Read ``.gpt.json`` from *base_dir* and merge it with CLI values."""
        file_config = load_file_config(base_dir)
        return merge_config(
            cli_out=cli_out,
            cli_in=cli_in,
            cli_optional=cli_optional,
            cli_exclude=cli_exclude,
            file_config=file_config,
        )


def load_file_config(base_dir: Path) -> Dict[str, Any]:
    """Return the parsed ``.gpt.json`` in *base_dir*, or ``{}`` if absent.

    A file that exists but cannot be read or parsed raises
    :class:`ConfigReadError`; absence alone is never an error.
    """
    config_path = base_dir / CONFIG_FILE_NAME
    if not config_path.exists():
        return {}
    if not config_path.is_file():
        raise ConfigReadError(f"'{config_path}' is not a file")

    try:
        with config_path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except json.JSONDecodeError as e:
        raise ConfigReadError(f"Could not parse config file '{config_path}': {e}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigReadError(f"Could not read config file '{config_path}': {e}") from e

    _validate_file_config(data, config_path)
    return data


def _validate_file_config(data: Any, config_path: Path) -> None:
    if not isinstance(data, dict):
        raise ConfigReadError(f"Config file '{config_path}' must contain a JSON object")

    out = data.get("out")
    if out is not None and not isinstance(out, str):
        raise ConfigReadError(f"'out' in '{config_path}' must be a string")

    for key in _LIST_FIELDS:
        value = data.get(key)
        if value is None:
            continue
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigReadError(f"'{key}' in '{config_path}' must be a list of strings")


def merge_config(
    cli_out: Optional[str],
    cli_in: Optional[List[str]],
    cli_optional: Optional[List[str]],
    cli_exclude: Optional[List[str]],
    file_config: Dict[str, Any],
) -> Config:
    """Combine command-line values with *file_config* into one :class:`Config`.

    CLI list arguments are ``None`` when the flag was never given, so the
    default optional pattern only applies when neither side mentions it.
    """
    file_optional = file_config.get("optional")
    if file_optional is None and cli_optional is None:
        optional = list(DEFAULT_OPTIONAL_PATTERNS)
    else:
        optional = [*(file_optional or []), *(cli_optional or [])]

    return Config(
        out=cli_out or file_config.get("out"),
        inputs=[*(file_config.get("in") or []), *(cli_in or [])],
        optional=optional,
        exclude=[*(file_config.get("exclude") or []), *(cli_exclude or [])],
    )

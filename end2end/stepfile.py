"""Step file loading: YAML with ``$VAR``/``${VAR}`` interpolation.

Example::

    shortname: "Check www.example.com Login"
    user_agent: "Nagios login check via check_end2end"
    vars:
      BASE_URL: "https://www.example.com"
    steps:
      "00 - Public login page":
        url: "${BASE_URL}/login.html"
        on_failure: WARNING
      "01 - Login verification":
        url: "${BASE_URL}/login.html"
        method: POST
        binary_data: "username=exampleuser&password=examplepassword"

Steps run in alphabetical order of their names.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from string import Template
from typing import Any

import yaml
from pydantic import BaseModel, ValidationError

from .engine.status import ConfigError

logger = logging.getLogger(__name__)


class StepFileModel(BaseModel):
    """Top-level shape of a step file. Step bodies are checked by the engine."""

    model_config = {"extra": "forbid"}

    shortname: str | None = None
    user_agent: str | None = None
    vars: dict[str, str] = {}
    steps: dict[str, dict[str, Any]]


@dataclass(frozen=True)
class StepFile:
    shortname: str | None
    user_agent: str | None
    steps: Mapping[str, Mapping[str, Any]]


class _Variables(dict):
    """Lookup table for Template; optionally expands unknown names to ''."""

    def __init__(self, values: Mapping[str, str], allow_empty: bool) -> None:
        super().__init__(values)
        self.allow_empty = allow_empty

    def __missing__(self, key: str) -> str:
        if self.allow_empty:
            logger.debug("Variable $%s undefined, expanding to ''", key)
            return ""
        raise ConfigError(f"Undefined variable ${key} in configuration file")


def parse_var_assignments(assignments: list[str] | None) -> dict[str, str]:
    """``NAME=VALUE`` strings from ``--var`` into a dict."""
    result: dict[str, str] = {}
    for item in assignments or []:
        name, sep, value = item.partition("=")
        if not sep or not name.strip():
            raise ConfigError(f"Cannot parse variable definition: {item}")
        result[name.strip()] = value
    return result


def interpolate(value: Any, variables: _Variables) -> Any:
    if isinstance(value, str):
        try:
            return Template(value).substitute(variables)
        except ValueError as e:
            raise ConfigError(f"Bad variable reference in {value!r}: {e}") from None
    if isinstance(value, dict):
        return {k: interpolate(v, variables) for k, v in value.items()}
    if isinstance(value, list):
        return [interpolate(v, variables) for v in value]
    return value


def load_step_file(
    path: str | Path,
    *,
    use_env: bool = False,
    allow_empty_vars: bool = False,
    cli_vars: Mapping[str, str] | None = None,
) -> StepFile:
    """Read, validate and interpolate a step file.

    A name defined in the file's ``vars`` section always wins. Otherwise it is
    looked up in ``cli_vars``, then in the process environment (only with
    ``use_env`` or when ``cli_vars`` are given).
    """
    path = Path(path)
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read configuration file {path}: {e.strerror or e}") from None
    except yaml.YAMLError as e:
        raise ConfigError(f"Cannot parse configuration file {path}: {e}") from None

    if not isinstance(raw, dict):
        raise ConfigError(f"Configuration file {path} must contain a mapping with a 'steps' section")

    # YAML may hand back non-string scalars; step names and vars are text.
    if isinstance(raw.get("steps"), dict):
        raw["steps"] = {str(k): v if v is not None else {} for k, v in raw["steps"].items()}
    if isinstance(raw.get("vars"), dict):
        raw["vars"] = {str(k): "" if v is None else str(v) for k, v in raw["vars"].items()}

    try:
        model = StepFileModel.model_validate(raw)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration file {path}: {problems}") from None

    values: dict[str, str] = {}
    if use_env or cli_vars:
        values.update(os.environ)
        values.update(cli_vars or {})
    values.update(model.vars)
    variables = _Variables(values, allow_empty_vars)

    steps = interpolate(model.steps, variables)
    shortname = interpolate(model.shortname, variables)
    user_agent = interpolate(model.user_agent, variables)
    logger.info("Loaded %d step(s) from %s", len(steps), path)
    return StepFile(shortname=shortname, user_agent=user_agent, steps=steps)

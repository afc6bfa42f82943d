# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/opsboot/config/loader.py

import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from pydantic import ValidationError

from opsboot.errors import PreconditionError
from .defaults import load_defaults
from .models import RunConfig

log = logging.getLogger("opsboot")

CONFIG_ENV = "OPSBOOT_CONFIG"
TOKEN_ENV = "GITHUB_TOKEN"

# RunConfig field -> CLI flag, for error messages
FLAG_NAMES = {
    "ops_user": "--ops-user",
    "github_org": "--github-user",
    "repo_name": "--repo",
    "git_user_name": "--git-user",
    "git_email": "--git-email",
}


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Recursively merge *override* into *base* (mutates base).
    Only overwrites when the override value is non-empty.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            _deep_merge(base[key], value)
        else:
            if value not in (None, ""):
                base[key] = value
    return base


def _load_yaml(path: Path) -> dict:
    """Load a YAML file, expanding ${ENV_VAR} references."""
    raw = path.read_text()
    expanded = os.path.expandvars(raw)
    data = yaml.safe_load(expanded) or {}
    if not isinstance(data, dict):
        raise PreconditionError(f"Config file {path} must contain a mapping")
    return data


def find_config_file(explicit: Optional[Path], env: Mapping[str, str]) -> Optional[Path]:
    """
    1. --config (explicit)
    2. OPSBOOT_CONFIG environment variable
    """
    if explicit is not None:
        if not explicit.is_file():
            raise PreconditionError(f"Config file not found: {explicit}")
        return explicit

    from_env = env.get(CONFIG_ENV)
    if from_env:
        p = Path(from_env)
        if p.is_file():
            return p
        log.warning("%s=%s does not exist, skipping", CONFIG_ENV, from_env)
    return None


def load_config_file(path: Optional[Path]) -> dict:
    if path is None:
        return {}
    log.debug("Loading config from %s", path)
    return _load_yaml(path)


def _describe_errors(exc: ValidationError) -> str:
    missing = []
    invalid = []
    for err in exc.errors():
        field = str(err["loc"][0]) if err["loc"] else "?"
        flag = FLAG_NAMES.get(field, field)
        if err["type"] == "missing":
            missing.append(flag)
        else:
            invalid.append(f"{flag}: {err['msg']}")
    parts = []
    if missing:
        parts.append("Missing required arguments: " + ", ".join(missing))
    if invalid:
        parts.append("Invalid arguments: " + "; ".join(invalid))
    return "\n".join(parts)


def resolve_run_config(
    flags: Mapping[str, Any],
    *,
    config_path: Optional[Path] = None,
    use_defaults: bool = False,
    env: Optional[Mapping[str, str]] = None,
) -> RunConfig:
    """
    Build the immutable RunConfig for a setup run.

    Precedence (lowest first): compiled-in identity defaults (only with
    ``use_defaults``), the YAML config file, CLI flags. Empty values never
    override. The GitHub token is taken from GITHUB_TOKEN when present.
    """
    env = os.environ if env is None else env

    data: dict = {}
    if use_defaults:
        data.update(load_defaults().identity)

    file_data = load_config_file(find_config_file(config_path, env))
    file_data.pop("register_key", None)
    _deep_merge(data, file_data)
    _deep_merge(data, dict(flags))

    token = env.get(TOKEN_ENV)
    if token and not data.get("github_token"):
        data["github_token"] = token

    try:
        return RunConfig.model_validate(data)
    except ValidationError as exc:
        raise PreconditionError(_describe_errors(exc)) from exc


def load_registrar_section(config_path: Optional[Path] = None, env: Optional[Mapping[str, str]] = None) -> dict:
    """The ``register_key:`` mapping of the config file, if any."""
    env = os.environ if env is None else env
    data = load_config_file(find_config_file(config_path, env))
    section = data.get("register_key") or {}
    if not isinstance(section, dict):
        raise PreconditionError("register_key must be a mapping")
    return section

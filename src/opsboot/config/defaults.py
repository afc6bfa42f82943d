# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

import yaml


DATA_DIR = Path(__file__).parent / "data"


@dataclass(frozen=True)
class Defaults:
    identity: dict[str, str]
    admin_group: str
    home_base: str
    raw_host_base: str
    registrar_ref: str
    registrar_script: str
    github_api_url: str
    packages: tuple[str, ...] = field(default_factory=tuple)


@lru_cache(maxsize=1)
def load_defaults() -> Defaults:
    path = DATA_DIR / "defaults.yml"

    with path.open() as f:
        raw = yaml.safe_load(f)

    return Defaults(
        identity=dict(raw["identity"]),
        admin_group=raw.get("admin_group", "sudo"),
        home_base=raw.get("home_base", "/home"),
        raw_host_base=raw["raw_host_base"],
        registrar_ref=raw["registrar_ref"],
        registrar_script=raw["registrar_script"],
        github_api_url=raw["github_api_url"],
        packages=tuple(raw.get("packages") or ()),
    )

# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/opsboot/registrar/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from opsboot.config.defaults import load_defaults


class RegistrarState(str, Enum):
    SELECT_KEY = "select_key"
    PROMPT_DETAILS = "prompt_details"
    REGISTER = "register"
    CONFIGURE_SSH = "configure_ssh"
    CLONE = "clone"
    DONE = "done"
    FAIL = "fail"


class RegistrationStatus(str, Enum):
    CREATED = "created"                 # HTTP 201
    ALREADY_EXISTS = "already_exists"   # HTTP 422


Profile = Literal["interactive", "provisioned"]

# What differs between the two historical registrar scripts
PROFILES: Dict[str, Dict[str, Any]] = {
    # derived default title, operator picks the clone directory
    "interactive": {
        "title_required": False,
        "prompt_clone_dir": True,
        "generate_if_missing": False,
    },
    # title must be given, clone lands in ~/<repo>, github_deploy is created if no key exists
    "provisioned": {
        "title_required": True,
        "prompt_clone_dir": False,
        "generate_if_missing": True,
    },
}


class RegistrarOptions(BaseModel):
    """
    Anything pre-filled here is not prompted for.
    ``account`` is the account the registrar acts as (None: the current user).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    github_org: Optional[str] = None
    repo_name: Optional[str] = None
    key_title: Optional[str] = None
    clone_dir: Optional[str] = None
    github_token: Optional[SecretStr] = Field(default=None, exclude=True, repr=False)

    account: Optional[str] = None
    ssh_dir: Optional[str] = None

    title_required: bool = False
    prompt_clone_dir: bool = True
    generate_if_missing: bool = False
    generated_key_name: str = "github_deploy"
    generated_key_comment: str = "github-deploy-key"

    api_url: str = Field(default_factory=lambda: load_defaults().github_api_url)
    http_timeout: float = 30.0
    replace_ssh_stanzas: bool = True

    @classmethod
    def for_profile(cls, profile: Profile = "interactive", **overrides: Any) -> "RegistrarOptions":
        if profile not in PROFILES:
            raise ValueError(f"unknown registrar profile: {profile}")
        data = dict(PROFILES[profile])
        data.update({k: v for k, v in overrides.items() if v not in (None, "")})
        return cls.model_validate(data)


@dataclass
class RegistrationDetails:
    github_org: str
    repo_name: str
    key_title: str
    clone_dir: str
    token: SecretStr = field(repr=False)

    @property
    def repository(self) -> str:
        return f"{self.github_org}/{self.repo_name}"

    @property
    def clone_url(self) -> str:
        return f"git@github.com:{self.github_org}/{self.repo_name}.git"


@dataclass
class RegistrarOutcome:
    state: RegistrarState = RegistrarState.SELECT_KEY
    visited: List[RegistrarState] = field(default_factory=list)
    public_key_path: Optional[str] = None
    details: Optional[RegistrationDetails] = None
    registration: Optional[RegistrationStatus] = None
    updated_existing_clone: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state is RegistrarState.DONE

    @property
    def key_path(self) -> Optional[str]:
        if self.public_key_path is None:
            return None
        return self.public_key_path[: -len(".pub")]

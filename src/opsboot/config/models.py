# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/opsboot/config/models.py

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from typing import Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from .defaults import load_defaults


@dataclass(frozen=True)
class KeyPair:
    """
    An SSH key pair on the target host. Only the private path is stored;
    the public half always lives next to it with a ``.pub`` suffix.
    """
    private_path: str
    comment: str

    @property
    def public_path(self) -> str:
        return f"{self.private_path}.pub"


RegistrarMode = Literal["script", "builtin", "skip"]


class RunConfig(BaseModel):
    """Everything one ``opsboot setup`` run needs. Immutable for the run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Identity (required unless --use-defaults)
    ops_user: str = Field(pattern=r"^[a-z_][a-z0-9_-]*\$?$", max_length=32)
    github_org: str = Field(min_length=1, pattern=r"^[A-Za-z0-9][A-Za-z0-9-]*$")
    repo_name: str = Field(min_length=1, pattern=r"^[A-Za-z0-9._-]+$")
    git_user_name: str = Field(min_length=1)
    git_email: str = Field(pattern=r"^[^@\s]+@[^@\s]+$")

    # Entered once, never persisted
    github_token: Optional[SecretStr] = Field(default=None, exclude=True, repr=False)

    # Host layout
    admin_group: str = Field(default_factory=lambda: load_defaults().admin_group)
    home_base: str = Field(default_factory=lambda: load_defaults().home_base)
    packages: Tuple[str, ...] = Field(default_factory=lambda: load_defaults().packages)
    configure_docker: bool = True
    replace_ssh_stanzas: bool = True

    # Registrar script source
    registrar: RegistrarMode = "script"
    raw_host_base: str = Field(default_factory=lambda: load_defaults().raw_host_base)
    registrar_ref: str = Field(default_factory=lambda: load_defaults().registrar_ref)
    registrar_script: str = Field(default_factory=lambda: load_defaults().registrar_script)
    github_api_url: str = Field(default_factory=lambda: load_defaults().github_api_url)
    http_timeout: float = 30.0

    # ------------------ derived ------------------

    @property
    def home_dir(self) -> str:
        return posixpath.join(self.home_base, self.ops_user)

    @property
    def ssh_dir(self) -> str:
        return posixpath.join(self.home_dir, ".ssh")

    @property
    def ssh_config_path(self) -> str:
        return posixpath.join(self.ssh_dir, "config")

    @property
    def ops_key(self) -> KeyPair:
        return KeyPair(posixpath.join(self.ssh_dir, "id_ed25519"), comment=self.git_email)

    @property
    def deploy_key(self) -> KeyPair:
        return KeyPair(posixpath.join(self.ssh_dir, "github_deploy"), comment="github-deploy-key")

    @property
    def registrar_url(self) -> str:
        return (
            f"https://{self.raw_host_base}/{self.github_org}/{self.repo_name}/"
            f"{self.registrar_ref}/{self.registrar_script}"
        )

    @property
    def registrar_script_path(self) -> str:
        return posixpath.join(self.home_dir, self.registrar_script)

    def describe(self) -> list[str]:
        return [
            f"Operations user: {self.ops_user}",
            f"Git user: {self.git_user_name} <{self.git_email}>",
            f"GitHub repository: {self.github_org}/{self.repo_name}",
            f"SSH directory: {self.ssh_dir}",
        ]

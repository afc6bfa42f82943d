# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/opsboot/registrar/machine.py

from __future__ import annotations

import logging
import posixpath
from typing import Callable, Dict, List, Optional

from pydantic import SecretStr

from opsboot.bootstrap.accounts import ensure_ssh_dir
from opsboot.bootstrap.keys import ensure_key_pair
from opsboot.bootstrap.privilege import require_tools
from opsboot.bootstrap.ssh_client import ensure_stanzas, github_stanza
from opsboot.config.models import KeyPair
from opsboot.errors import ExternalToolFailure, OpsbootError, PreconditionError
from opsboot.execution.interface import HostExecutor
from opsboot.observers.dispatcher import EventBus
from opsboot.observers.events import (
    DeployKeyRegistered,
    RegistrarTransition,
    StepFailed,
    StepProgress,
    StepSkipped,
    StepStarted,
    StepSucceeded,
    StepWarning,
)
from .github import GitHubDeployKeys
from .models import (
    RegistrarOptions,
    RegistrarOutcome,
    RegistrarState,
    RegistrationDetails,
    RegistrationStatus,
)
from .prompts import InputProvider

log = logging.getLogger("opsboot")

GIT_SSH_COMMAND = "ssh -o StrictHostKeyChecking=accept-new"

S = RegistrarState


class DeployKeyRegistrar:
    """
    Linear state machine:

        SELECT_KEY -> PROMPT_DETAILS -> REGISTER -> CONFIGURE_SSH -> CLONE -> DONE

    Any OpsbootError moves it to FAIL; nothing after the failing state runs.
    """

    def __init__(
        self,
        executor: HostExecutor,
        inputs: InputProvider,
        *,
        bus: EventBus,
        options: Optional[RegistrarOptions] = None,
        github: Optional[GitHubDeployKeys] = None,
    ):
        self.executor = executor
        self.inputs = inputs
        self.bus = bus
        self.options = options or RegistrarOptions()
        self.github = github or GitHubDeployKeys(self.options.api_url, timeout=self.options.http_timeout)

        self.account = self.options.account
        self.home = executor.home_dir(self.account)
        self.ssh_dir = self.options.ssh_dir or posixpath.join(self.home, ".ssh")
        self._public_key: str = ""

        self._handlers: Dict[RegistrarState, Callable[[RegistrarOutcome], RegistrarState]] = {
            S.SELECT_KEY: self._select_key,
            S.PROMPT_DETAILS: self._prompt_details,
            S.REGISTER: self._register,
            S.CONFIGURE_SSH: self._configure_ssh,
            S.CLONE: self._clone,
        }

    # ------------------ public API ------------------

    def run(self) -> RegistrarOutcome:
        outcome = RegistrarOutcome()
        state = S.SELECT_KEY
        while state not in (S.DONE, S.FAIL):
            outcome.visited.append(state)
            try:
                nxt = self._handlers[state](outcome)
            except OpsbootError as exc:
                outcome.error = str(exc)
                self.bus.emit_new(StepFailed, step=state.value, error=str(exc))
                nxt = S.FAIL
            self.bus.emit_new(RegistrarTransition, source=state.value, target=nxt.value)
            state = nxt
        outcome.state = state
        return outcome

    # ------------------ states ------------------

    def _select_key(self, outcome: RegistrarOutcome) -> RegistrarState:
        tools = ["git"] + (["ssh-keygen"] if self.options.generate_if_missing else [])
        require_tools(self.executor, tools)

        keys = self._public_keys()
        if not keys and self.options.generate_if_missing:
            keys = [self._generate_key()]
        if not keys:
            raise PreconditionError(f"No public SSH keys found in {self.ssh_dir}")

        chosen = keys[0] if len(keys) == 1 else self._choose(keys)
        content = (self.executor.read_text(chosen) or "").strip()
        if not content:
            raise PreconditionError(f"Public key {chosen} is empty or unreadable")

        self._public_key = content
        outcome.public_key_path = chosen
        self.bus.emit_new(StepSucceeded, step=S.SELECT_KEY.value, message=f"Using public key {chosen}")
        return S.PROMPT_DETAILS

    def _prompt_details(self, outcome: RegistrarOutcome) -> RegistrarState:
        opts = self.options

        org = opts.github_org or self._ask_required("👤 GitHub user/org (e.g., policloud)")
        repo = opts.repo_name or self._ask_required("📦 Repository name (e.g., my-repo)")

        title = opts.key_title
        if not title:
            if opts.title_required:
                title = self._ask_required("🏷️  Deploy key title")
            else:
                default_title = f"auto-deploy-{self.executor.hostname()}"
                title = self.inputs.ask("🏷️  Deploy key title", default=default_title).strip() or default_title

        default_clone = posixpath.join(self.home, repo)
        clone_dir = opts.clone_dir
        if not clone_dir and opts.prompt_clone_dir:
            clone_dir = self.inputs.ask("📁 Clone directory", default=default_clone).strip()
        clone_dir = self._expand_home(clone_dir or default_clone)

        if opts.github_token is not None:
            token = opts.github_token
        else:
            token = SecretStr(self.inputs.secret("🔐 GitHub token (with repo + admin:public_key scopes)").strip())
        if not token.get_secret_value():
            raise PreconditionError("A GitHub token is required to register a deploy key")

        outcome.details = RegistrationDetails(org, repo, title, clone_dir, token)
        return S.REGISTER

    def _register(self, outcome: RegistrarOutcome) -> RegistrarState:
        d = outcome.details
        self.bus.emit_new(StepStarted, step=S.REGISTER.value, message=f"Adding deploy key to {d.repository}...")

        status = self.github.add_key(
            d.github_org,
            d.repo_name,
            title=d.key_title,
            key=self._public_key,
            token=d.token.get_secret_value(),
        )
        outcome.registration = status

        if status is RegistrationStatus.CREATED:
            self.bus.emit_new(StepSucceeded, step=S.REGISTER.value, message="Deploy key added successfully!")
            code = 201
        else:
            self.bus.emit_new(StepWarning, step=S.REGISTER.value, message="Deploy key already exists, continuing...")
            code = 422
        self.bus.emit_new(DeployKeyRegistered, repository=d.repository, title=d.key_title, status_code=code)
        return S.CONFIGURE_SSH

    def _configure_ssh(self, outcome: RegistrarOutcome) -> RegistrarState:
        config_path = posixpath.join(self.ssh_dir, "config")
        changed = ensure_stanzas(
            self.executor,
            config_path,
            [github_stanza(outcome.key_path)],
            owner=self.account,
            replace=self.options.replace_ssh_stanzas,
        )
        if changed:
            self.bus.emit_new(StepSucceeded, step=S.CONFIGURE_SSH.value, message=f"SSH config for GitHub written to {config_path}")
        else:
            self.bus.emit_new(StepSkipped, step=S.CONFIGURE_SSH.value, message="SSH config for GitHub already present")
        return S.CLONE

    def _clone(self, outcome: RegistrarOutcome) -> RegistrarState:
        d = outcome.details
        if self.executor.exists(posixpath.join(d.clone_dir, ".git")):
            self.bus.emit_new(StepProgress, step=S.CLONE.value, message="Repo already exists. Pulling latest changes...")
            cmd = ["git", "-C", d.clone_dir, "pull"]
            outcome.updated_existing_clone = True
        else:
            self.bus.emit_new(StepStarted, step=S.CLONE.value, message=f"Cloning repo to {d.clone_dir}...")
            cmd = ["git", "clone", d.clone_url, d.clone_dir]

        r = self.executor.run(cmd, as_user=self.account, env={"GIT_SSH_COMMAND": GIT_SSH_COMMAND})
        if not r.ok:
            raise ExternalToolFailure(cmd, r.returncode, r.stderr)

        self.bus.emit_new(StepSucceeded, step=S.CLONE.value, message=f"Repo ready at {d.clone_dir}")
        return S.DONE

    # ------------------ helpers ------------------

    def _public_keys(self) -> List[str]:
        return [
            posixpath.join(self.ssh_dir, name)
            for name in self.executor.list_dir(self.ssh_dir)
            if name.endswith(".pub")
        ]

    def _generate_key(self) -> str:
        pair = KeyPair(
            posixpath.join(self.ssh_dir, self.options.generated_key_name),
            comment=self.options.generated_key_comment,
        )
        self.bus.emit_new(StepStarted, step=S.SELECT_KEY.value, message=f"No public keys found, generating {pair.private_path}")
        ensure_ssh_dir(self.executor, self.account, self.ssh_dir)
        ensure_key_pair(self.executor, self.account, pair)
        return pair.public_path

    def _choose(self, keys: List[str]) -> str:
        self.inputs.show_options("Available SSH public keys:", keys)
        while True:
            raw = self.inputs.choose("#?").strip()
            if raw.isdigit() and 1 <= int(raw) <= len(keys):
                return keys[int(raw) - 1]
            self.bus.emit_new(StepWarning, step=S.SELECT_KEY.value, message="Invalid selection.")

    def _ask_required(self, prompt: str) -> str:
        value = self.inputs.ask(prompt).strip()
        if not value:
            label = prompt.split(" ", 1)[-1].split(" (", 1)[0].strip()
            raise PreconditionError(f"{label} is required")
        return value

    def _expand_home(self, path: str) -> str:
        if path == "~":
            return self.home
        if path.startswith("~/"):
            return posixpath.join(self.home, path[2:])
        return path

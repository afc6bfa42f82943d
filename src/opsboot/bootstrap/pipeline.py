# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/opsboot/bootstrap/pipeline.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import requests

from opsboot.config.models import RunConfig
from opsboot.errors import OpsbootError
from opsboot.execution.interface import HostExecutor
from opsboot.observers.dispatcher import EventBus
from opsboot.observers.events import (
    RunSummary,
    StepFailed,
    StepProgress,
    StepSkipped,
    StepStarted,
    StepSucceeded,
    StepWarning,
)
from opsboot.registrar.github import GitHubDeployKeys
from opsboot.registrar.machine import DeployKeyRegistrar
from opsboot.registrar.models import RegistrarOptions
from opsboot.registrar.prompts import InputProvider, TerminalInputProvider

from .accounts import ensure_account, ensure_ssh_dir
from .docker import configure_docker
from .fetch import fetch_script
from .git_identity import run_registrar_script, set_global_git_identity
from .keys import ensure_key_pair
from .packages import install_packages
from .privilege import require_privileges
from .ssh_client import ensure_stanzas, stanzas_for

log = logging.getLogger("opsboot")


@dataclass
class PipelineReport:
    completed: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    account_created: bool = False
    keys_generated: List[str] = field(default_factory=list)
    ssh_config_changed: bool = False
    script_fetched: bool = False
    registrar_status: Optional[int] = None
    summary: List[str] = field(default_factory=list)


class BootstrapPipeline:
    """
    One pass over a host:

        guard -> account -> packages -> keys -> ssh config -> fetch
              -> docker -> git identity (+ registrar) -> summary

    Fatal errors emit a failure event and propagate; nothing is rolled back.
    """

    def __init__(
        self,
        executor: HostExecutor,
        bus: EventBus,
        *,
        inputs: Optional[InputProvider] = None,
        http: Optional[requests.Session] = None,
    ):
        self.executor = executor
        self.bus = bus
        self.inputs = inputs or TerminalInputProvider()
        self.http = http or requests.Session()
        self._step = "configuration"

    # ------------------ public API ------------------

    def run(self, cfg: RunConfig) -> PipelineReport:
        report = PipelineReport()
        steps = [
            ("configuration", self.show_configuration),
            ("privileges", self.check_privileges),
            ("account", self.provision_account),
            ("packages", self.install_packages),
            ("ssh_keys", self.generate_keys),
            ("ssh_config", self.configure_ssh_client),
            ("fetch_script", self.fetch_registrar),
            ("docker", self.setup_docker),
            ("git", self.configure_git),
        ]
        try:
            for name, step in steps:
                self._step = name
                step(cfg, report)
                report.completed.append(name)
        except OpsbootError as exc:
            self.bus.emit_new(StepFailed, step=self._step, error=str(exc))
            self.bus.emit_new(RunSummary, status="FAILED", lines=[], error=str(exc))
            raise

        report.summary = self.summary_lines(cfg, report)
        self.bus.emit_new(RunSummary, status="OK", lines=report.summary)
        return report

    # ------------------ steps ------------------

    def show_configuration(self, cfg: RunConfig, report: PipelineReport) -> None:
        self._started("Configuration:")
        for line in cfg.describe():
            self.bus.emit_new(StepProgress, step=self._step, message=line)

    def check_privileges(self, cfg: RunConfig, report: PipelineReport) -> None:
        require_privileges(self.executor)

    def provision_account(self, cfg: RunConfig, report: PipelineReport) -> None:
        self._started(f"Creating operations user: {cfg.ops_user}")
        report.account_created = ensure_account(self.executor, cfg.ops_user, admin_group=cfg.admin_group)
        if report.account_created:
            self._ok(f"User {cfg.ops_user} created and added to {cfg.admin_group} group")
        else:
            self._skipped(f"User {cfg.ops_user} already exists")
        ensure_ssh_dir(self.executor, cfg.ops_user, cfg.ssh_dir)

    def install_packages(self, cfg: RunConfig, report: PipelineReport) -> None:
        self._started("Updating package lists and installing required packages...")
        for warning in install_packages(self.executor, cfg.packages):
            self._warn(warning, report)
        self._ok("All packages installed successfully")

    def generate_keys(self, cfg: RunConfig, report: PipelineReport) -> None:
        self._started(f"Generating SSH keys for user: {cfg.ops_user}")
        for label, pair in (("Operations", cfg.ops_key), ("GitHub deploy", cfg.deploy_key)):
            if ensure_key_pair(self.executor, cfg.ops_user, pair):
                report.keys_generated.append(pair.private_path)
                self._ok(f"{label} SSH key generated")
            else:
                self._skipped(f"{label} SSH key already exists")

    def configure_ssh_client(self, cfg: RunConfig, report: PipelineReport) -> None:
        self._started(f"Configuring SSH client for user: {cfg.ops_user}")
        report.ssh_config_changed = ensure_stanzas(
            self.executor,
            cfg.ssh_config_path,
            stanzas_for(cfg),
            owner=cfg.ops_user,
            replace=cfg.replace_ssh_stanzas,
        )
        if report.ssh_config_changed:
            self._ok("SSH config written")
        else:
            self._skipped("SSH config already up to date")

    def fetch_registrar(self, cfg: RunConfig, report: PipelineReport) -> None:
        self._started(f"Downloading Git configuration script from: {cfg.registrar_url}")
        report.script_fetched = fetch_script(
            self.executor,
            cfg.registrar_url,
            cfg.registrar_script_path,
            owner=cfg.ops_user,
            session=self.http,
            timeout=cfg.http_timeout,
        )
        if report.script_fetched:
            self._ok(f"Git configuration script downloaded to {cfg.registrar_script_path}")
        else:
            # reported, not fatal
            self.bus.emit_new(StepFailed, step=self._step, error="Failed to download Git configuration script")
            report.warnings.append("registrar script download failed")

    def setup_docker(self, cfg: RunConfig, report: PipelineReport) -> None:
        if not cfg.configure_docker:
            return
        self._started(f"Configuring Docker for user: {cfg.ops_user}")
        outcome = configure_docker(self.executor, cfg.ops_user)
        for warning in outcome.warnings:
            self._warn(warning, report)
        if outcome.service_started:
            self._ok("Docker service enabled and started")
        else:
            self._ok("Docker configured")

    def configure_git(self, cfg: RunConfig, report: PipelineReport) -> None:
        self._started(f"Configuring Git globally for user: {cfg.ops_user}")
        set_global_git_identity(self.executor, cfg.ops_user, cfg.git_user_name, cfg.git_email)
        self._ok(f"Git global configuration completed ({cfg.git_user_name} <{cfg.git_email}>)")

        if cfg.registrar == "skip":
            return
        if cfg.registrar == "builtin":
            report.registrar_status = self._run_builtin_registrar(cfg)
        else:
            report.registrar_status = self._run_script_registrar(cfg, report)

        if report.registrar_status == 0:
            self._ok("Git configuration script completed successfully")
        elif report.registrar_status is not None:
            self.bus.emit_new(StepFailed, step=self._step, error="Git configuration script encountered an error")
            report.warnings.append(f"registrar exited with {report.registrar_status}")

    # ------------------ registrar ------------------

    def _run_script_registrar(self, cfg: RunConfig, report: PipelineReport) -> Optional[int]:
        path = cfg.registrar_script_path
        if not self.executor.exists(path):
            self.bus.emit_new(StepFailed, step=self._step, error=f"Git configuration script not found at {path}")
            report.warnings.append("registrar script missing")
            return None
        if not self.executor.supports_interactive:
            self._warn(
                f"{path} prompts for input and cannot run over SSH; "
                f"run `opsboot register-key` against this host instead",
                report,
            )
            return None
        self.bus.emit_new(StepProgress, step=self._step, message=f"Executing {path} as {cfg.ops_user} (you may need to provide a GitHub token)")
        return run_registrar_script(self.executor, cfg.ops_user, path)

    def _run_builtin_registrar(self, cfg: RunConfig) -> int:
        options = RegistrarOptions.for_profile(
            "interactive",
            github_org=cfg.github_org,
            repo_name=cfg.repo_name,
            github_token=cfg.github_token,
            account=cfg.ops_user,
            ssh_dir=cfg.ssh_dir,
            api_url=cfg.github_api_url,
            http_timeout=cfg.http_timeout,
            replace_ssh_stanzas=cfg.replace_ssh_stanzas,
        )
        registrar = DeployKeyRegistrar(
            self.executor,
            self.inputs,
            bus=self.bus,
            options=options,
            github=GitHubDeployKeys(cfg.github_api_url, session=self.http, timeout=cfg.http_timeout),
        )
        outcome = registrar.run()
        return 0 if outcome.ok else 1

    # ------------------ summary ------------------

    def summary_lines(self, cfg: RunConfig, report: PipelineReport) -> List[str]:
        lines = [
            "📋 Summary:",
            f"• User '{cfg.ops_user}' {'created' if report.account_created else 'present'} with {cfg.admin_group} privileges",
            f"• {len(cfg.packages)} packages installed",
            "• Git configured globally:",
            f"  - User: {cfg.git_user_name}",
            f"  - Email: {cfg.git_email}",
            f"• GitHub repository: {cfg.github_org}/{cfg.repo_name}",
            "• SSH keys:",
            f"  - {cfg.ops_key.private_path} (operations key)",
            f"  - {cfg.deploy_key.private_path} (GitHub deploy key)",
            "• SSH config configured for GitHub and network servers",
        ]
        if cfg.configure_docker:
            lines.append("• Docker configured")
        if report.registrar_status is not None:
            lines.append(f"• Git configuration script exited with {report.registrar_status}")
        if report.warnings:
            lines.append(f"• {len(report.warnings)} warning(s), see the run log")

        lines += [
            "",
            "📝 Next Steps:",
            f"1. Switch to operations user: sudo su - {cfg.ops_user}",
            "2. Verify Git repository was cloned successfully",
            "",
            "🔑 Public Keys:",
        ]
        for label, pair in (("Operations key:", cfg.ops_key), ("GitHub deploy key:", cfg.deploy_key)):
            content = self.executor.read_text(pair.public_path)
            lines.append(label)
            lines.append(content.strip() if content else "  (not found)")
        return lines

    # ------------------ event helpers ------------------

    def _started(self, message: str) -> None:
        self.bus.emit_new(StepStarted, step=self._step, message=message)

    def _ok(self, message: str) -> None:
        self.bus.emit_new(StepSucceeded, step=self._step, message=message)

    def _skipped(self, message: str) -> None:
        self.bus.emit_new(StepSkipped, step=self._step, message=message)

    def _warn(self, message: str, report: PipelineReport) -> None:
        report.warnings.append(message)
        self.bus.emit_new(StepWarning, step=self._step, message=message)

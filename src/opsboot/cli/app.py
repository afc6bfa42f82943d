# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/opsboot/cli/app.py
from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional

import typer

from opsboot.bootstrap.pipeline import BootstrapPipeline
from opsboot.config.loader import TOKEN_ENV, load_registrar_section, resolve_run_config
from opsboot.errors import OpsbootError, PreconditionError
from opsboot.execution.interface import HostExecutor
from opsboot.execution.local import LocalExecutor
from opsboot.execution.models import SshTarget
from opsboot.execution.ssh import open_ssh
from opsboot.logging.log import default_log_dir, init_logging
from opsboot.observers.console import ConsoleObserver
from opsboot.observers.dispatcher import EventBus
from opsboot.observers.jsonfile import JsonFileObserver
from opsboot.observers.logger import LoggerObserver
from opsboot.registrar.machine import DeployKeyRegistrar
from opsboot.registrar.models import PROFILES, RegistrarOptions
from opsboot.registrar.prompts import TerminalInputProvider


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(
    help="Bootstrap Linux hosts: ops account, packages, SSH keys, deploy keys, git identity",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


# ------------------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------------------

def build_executor(
    *,
    target_host: Optional[str],
    ssh_username: Optional[str],
    ssh_key: Optional[Path],
    ssh_port: int,
    ssh_password: Optional[str],
    become: bool,
) -> HostExecutor:
    """Local machine by default, a paramiko session with --target-host."""
    if not target_host:
        return LocalExecutor()
    if not ssh_username:
        raise PreconditionError("--ssh-username is required with --target-host")
    target = SshTarget(
        address=target_host,
        username=ssh_username,
        port=ssh_port,
        password=ssh_password,
        pkey_path=ssh_key,
        become=become,
        become_password=os.environ.get("OPSBOOT_BECOME_PASSWORD"),
    )
    return open_ssh(target)


def build_bus(logger, run_id: str, host: str) -> EventBus:
    observers = [
        ConsoleObserver(),
        LoggerObserver(logger),
        JsonFileObserver(default_log_dir() / f"{run_id}.jsonl"),
    ]
    return EventBus(observers=observers, host=host, run_id=run_id)


def _fail(message: str, *, usage: Optional[str] = None) -> None:
    typer.secho(f"❌ {message}", fg=typer.colors.RED, err=True)
    if usage:
        typer.echo(usage, err=True)
    raise typer.Exit(1)


def _banner(title: str, run_id: str, log_path: Path) -> None:
    bar = "=" * 40
    typer.secho(f"\n{bar}", fg=typer.colors.BLUE)
    typer.secho(title, fg=typer.colors.BLUE, bold=True)
    typer.secho(bar, fg=typer.colors.BLUE)
    typer.echo(f"  Run ID   : {run_id}")
    typer.echo(f"  Logs     : {log_path}")
    typer.echo("")


# ------------------------------------------------------------------------------
# setup
# ------------------------------------------------------------------------------

@app.command()
def setup(
    ctx: typer.Context,
    ops_user: Optional[str] = typer.Option(None, "--ops-user", "-o", help="Operations user name"),
    github_user: Optional[str] = typer.Option(None, "--github-user", "-g", help="GitHub username/organization"),
    git_user: Optional[str] = typer.Option(None, "--git-user", "-u", help="Git username"),
    git_email: Optional[str] = typer.Option(None, "--git-email", "-e", help="Git email address"),
    repo: Optional[str] = typer.Option(None, "--repo", "-r", help="Repository name"),
    config: Optional[Path] = typer.Option(None, "--config", help="YAML config file (or $OPSBOOT_CONFIG)"),
    use_defaults: bool = typer.Option(False, "--use-defaults", help="Fill missing identity values with compiled-in defaults"),
    registrar: Optional[str] = typer.Option(
        None,
        "--registrar",
        help="What runs after git is configured: script (fetched configure-git.sh), builtin, or skip",
    ),
    packages: Optional[List[str]] = typer.Option(None, "--package", help="Override the package list (repeatable)"),
    no_docker: bool = typer.Option(False, "--no-docker", help="Skip docker group/service configuration"),
    target_host: Optional[str] = typer.Option(None, "--target-host", help="Bootstrap a remote host over SSH"),
    ssh_username: Optional[str] = typer.Option(None, "--ssh-username"),
    ssh_key: Optional[Path] = typer.Option(None, "--ssh-key"),
    ssh_port: int = typer.Option(22, "--ssh-port"),
    ssh_password: Optional[str] = typer.Option(None, "--ssh-password"),
    debug: bool = typer.Option(False, "--debug"),
):
    """Provision the operations account, packages, SSH keys and git identity."""
    logger, run_id, log_path = init_logging(verbose=debug)

    flags = {
        "ops_user": ops_user,
        "github_org": github_user,
        "repo_name": repo,
        "git_user_name": git_user,
        "git_email": git_email,
        "registrar": registrar,
        "packages": packages or None,
        "configure_docker": False if no_docker else None,
    }
    try:
        cfg = resolve_run_config(flags, config_path=config, use_defaults=use_defaults)
    except PreconditionError as exc:
        logger.error(str(exc))
        _fail(str(exc), usage=ctx.get_help())

    _banner("Linux System Setup", run_id, log_path)

    try:
        executor = build_executor(
            target_host=target_host,
            ssh_username=ssh_username,
            ssh_key=ssh_key,
            ssh_port=ssh_port,
            ssh_password=ssh_password,
            become=True,
        )
    except OpsbootError as exc:
        _fail(str(exc))

    bus = build_bus(logger, run_id, executor.name)
    with executor:
        try:
            BootstrapPipeline(executor, bus, inputs=TerminalInputProvider()).run(cfg)
        except OpsbootError:
            # already reported through the event bus
            raise typer.Exit(1)


# ------------------------------------------------------------------------------
# register-key
# ------------------------------------------------------------------------------

@app.command("register-key")
def register_key(
    github_user: Optional[str] = typer.Option(None, "--github-user", "-g", help="GitHub username/organization (prompted if omitted)"),
    repo: Optional[str] = typer.Option(None, "--repo", "-r", help="Repository name (prompted if omitted)"),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="Deploy key title"),
    clone_dir: Optional[str] = typer.Option(None, "--clone-dir", help="Where to clone the repository"),
    ssh_dir: Optional[str] = typer.Option(None, "--ssh-dir", help="Directory holding *.pub keys (default ~/.ssh)"),
    account: Optional[str] = typer.Option(None, "--account", help="Act as this account (requires root/sudo)"),
    profile: str = typer.Option("interactive", "--profile", help=f"One of: {', '.join(PROFILES)}"),
    config: Optional[Path] = typer.Option(None, "--config", help="YAML config file with a register_key section"),
    target_host: Optional[str] = typer.Option(None, "--target-host", help="Run against a remote host over SSH"),
    ssh_username: Optional[str] = typer.Option(None, "--ssh-username"),
    ssh_key: Optional[Path] = typer.Option(None, "--ssh-key"),
    ssh_port: int = typer.Option(22, "--ssh-port"),
    ssh_password: Optional[str] = typer.Option(None, "--ssh-password"),
    debug: bool = typer.Option(False, "--debug"),
):
    """Register an SSH public key as a read-only GitHub deploy key and clone the repo."""
    logger, run_id, log_path = init_logging(verbose=debug)

    if profile not in PROFILES:
        _fail(f"Unknown profile '{profile}' (expected one of: {', '.join(PROFILES)})")

    try:
        section = load_registrar_section(config)
        profile = section.pop("profile", None) or profile
        overrides = {
            **section,
            "github_org": github_user or section.get("github_org"),
            "repo_name": repo or section.get("repo_name"),
            "key_title": title or section.get("key_title"),
            "clone_dir": clone_dir or section.get("clone_dir"),
            "ssh_dir": ssh_dir or section.get("ssh_dir"),
            "account": account or section.get("account"),
            "github_token": os.environ.get(TOKEN_ENV),
        }
        options = RegistrarOptions.for_profile(profile, **overrides)
    except (OpsbootError, ValueError) as exc:
        _fail(str(exc))

    _banner("Deploy Key Registrar", run_id, log_path)

    try:
        executor = build_executor(
            target_host=target_host,
            ssh_username=ssh_username,
            ssh_key=ssh_key,
            ssh_port=ssh_port,
            ssh_password=ssh_password,
            become=options.account is not None,
        )
    except OpsbootError as exc:
        _fail(str(exc))

    bus = build_bus(logger, run_id, executor.name)
    with executor:
        outcome = DeployKeyRegistrar(executor, TerminalInputProvider(), bus=bus, options=options).run()

    if not outcome.ok:
        raise typer.Exit(1)


# ------------------------------------------------------------------------------
# entry point
# ------------------------------------------------------------------------------

def main() -> None:
    """
    Console entry point. typer prints usage and errors itself; a usage error
    (unknown flag, bad value, no command) exits 1 rather than 2.
    """
    try:
        app()
    except SystemExit as exc:
        if exc.code == 2:
            raise SystemExit(1) from None
        raise


if __name__ == "__main__":
    main()

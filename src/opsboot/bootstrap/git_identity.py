# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/opsboot/bootstrap/git_identity.py

from __future__ import annotations

import logging

from opsboot.execution.interface import HostExecutor

log = logging.getLogger("opsboot")

REPOSITORY_DEFAULTS = (
    ("init.defaultBranch", "main"),
    ("pull.rebase", "false"),
)


def set_global_git_identity(executor: HostExecutor, account: str | None, name: str, email: str) -> None:
    settings = (("user.name", name), ("user.email", email), *REPOSITORY_DEFAULTS)
    for key, value in settings:
        executor.run(["git", "config", "--global", key, value], as_user=account, check=True)
    log.info("Git identity for %s: %s <%s>", account, name, email)


def run_registrar_script(executor: HostExecutor, account: str | None, script_path: str) -> int:
    """
    Run the fetched registrar script as the account, attached to the
    terminal (it prompts). The exit status is returned, never raised.
    """
    result = executor.run(["bash", script_path], as_user=account, interactive=True)
    log.info("%s exited with %d", script_path, result.returncode)
    return result.returncode

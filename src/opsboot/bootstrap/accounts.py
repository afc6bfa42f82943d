# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/opsboot/bootstrap/accounts.py

from __future__ import annotations

import logging

from opsboot.execution.interface import HostExecutor

log = logging.getLogger("opsboot")


def account_exists(executor: HostExecutor, name: str) -> bool:
    return executor.run(["id", name]).ok


def ensure_account(
    executor: HostExecutor,
    name: str,
    *,
    admin_group: str = "sudo",
    shell: str = "/bin/bash",
) -> bool:
    """
    Create the operations account with a home directory and login shell and
    enroll it in the admin group. Returns False if it already existed.
    """
    if account_exists(executor, name):
        log.info("User %s already exists", name)
        return False

    executor.run(["useradd", "-m", "-s", shell, name], check=True)
    executor.run(["usermod", "-aG", admin_group, name], check=True)
    log.info("User %s created and added to %s group", name, admin_group)
    return True


def ensure_ssh_dir(executor: HostExecutor, account: str | None, path: str) -> bool:
    """~/.ssh owned by the account, mode 0700. Returns True if it was created."""
    existed = executor.exists(path)
    executor.run(["mkdir", "-p", path], as_user=account, check=True)
    executor.run(["chmod", "700", path], as_user=account, check=True)
    return not existed

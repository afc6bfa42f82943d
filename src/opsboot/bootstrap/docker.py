# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/opsboot/bootstrap/docker.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

from opsboot.execution.interface import HostExecutor

log = logging.getLogger("opsboot")


@dataclass
class DockerOutcome:
    service_started: bool = False
    warnings: List[str] = field(default_factory=list)


def systemd_available(executor: HostExecutor) -> bool:
    return executor.which("systemctl") and executor.run(["systemctl", "is-system-running", "--quiet"]).ok


def configure_docker(executor: HostExecutor, account: str) -> DockerOutcome:
    """
    Add the account to the docker group, then enable and start the docker
    service when systemd is running (it is not inside most containers).
    """
    outcome = DockerOutcome()

    r = executor.run(["usermod", "-aG", "docker", account])
    if not r.ok:
        outcome.warnings.append(f"Could not add {account} to the docker group (rc={r.returncode})")

    if not systemd_available(executor):
        outcome.warnings.append(
            "Systemd not available - Docker service configuration skipped "
            "(in production run: systemctl enable --now docker)"
        )
        return outcome

    for action in ("enable", "start"):
        r = executor.run(["systemctl", action, "docker"])
        if not r.ok:
            outcome.warnings.append(f"systemctl {action} docker failed (rc={r.returncode})")
            return outcome

    outcome.service_started = True
    log.info("Docker service enabled and started")
    return outcome

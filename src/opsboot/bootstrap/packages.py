# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/opsboot/bootstrap/packages.py

from __future__ import annotations

import logging
from typing import List, Sequence

from opsboot.execution.interface import HostExecutor

log = logging.getLogger("opsboot")

APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


def install_packages(executor: HostExecutor, packages: Sequence[str], *, upgrade: bool = True) -> List[str]:
    """
    apt-get update / upgrade / install.

    Only the install is fatal (ExternalToolFailure, no retry); index refresh
    and upgrade failures come back as warnings.
    """
    warnings: List[str] = []
    if not packages:
        log.info("No packages requested")
        return warnings

    r = executor.run(["apt-get", "update"], env=APT_ENV)
    if not r.ok:
        warnings.append(f"apt-get update failed (rc={r.returncode})")

    if upgrade:
        r = executor.run(["apt-get", "upgrade", "-y"], env=APT_ENV)
        if not r.ok:
            warnings.append(f"apt-get upgrade failed (rc={r.returncode})")

    executor.run(["apt-get", "install", "-y", *packages], env=APT_ENV, check=True)
    log.info("Installed %d packages", len(packages))
    return warnings

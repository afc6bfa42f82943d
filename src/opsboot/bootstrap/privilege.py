# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from typing import Iterable

from opsboot.errors import PreconditionError
from opsboot.execution.interface import HostExecutor


def require_privileges(executor: HostExecutor) -> None:
    if not executor.is_privileged():
        raise PreconditionError("This script must be run as root (use sudo)")


def require_tools(executor: HostExecutor, tools: Iterable[str]) -> None:
    missing = [t for t in tools if not executor.which(t)]
    if missing:
        verb = "is" if len(missing) == 1 else "are"
        raise PreconditionError(f"{', '.join(missing)} {verb} required")

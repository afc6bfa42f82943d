# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/opsboot/execution/interface.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Protocol, Sequence


@dataclass(frozen=True)
class CommandResult:
    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class HostExecutor(Protocol):
    """
    Runs commands and touches files on one target host.

    ``as_user`` is the "execute as identity X" capability: steps never switch
    credentials themselves, they ask the executor to.
    """

    name: str
    supports_interactive: bool

    def run(
        self,
        cmd: Sequence[str],
        *,
        as_user: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
        check: bool = False,
        interactive: bool = False,
    ) -> CommandResult: ...

    def which(self, program: str) -> bool: ...

    def is_privileged(self) -> bool: ...

    def exists(self, path: str) -> bool: ...

    def read_text(self, path: str) -> Optional[str]: ...

    def write_text(self, path: str, content: str, *, mode: int, owner: Optional[str] = None) -> None: ...

    def list_dir(self, path: str) -> List[str]: ...

    def home_dir(self, user: Optional[str] = None) -> str: ...

    def current_user(self) -> str: ...

    def hostname(self) -> str: ...

    def close(self) -> None: ...


def env_prefix(env: Optional[Mapping[str, str]]) -> List[str]:
    """``env K=V ...`` prefix; survives sudo/su environment resets."""
    if not env:
        return []
    return ["env", *(f"{k}={v}" for k, v in env.items())]

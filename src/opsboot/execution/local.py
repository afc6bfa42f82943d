# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/opsboot/execution/local.py

from __future__ import annotations

import logging
import os
import pwd
import shlex
import shutil
import socket
import subprocess
import time
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

from opsboot.errors import ExternalToolFailure
from .interface import CommandResult, env_prefix

log = logging.getLogger("opsboot")


class LocalExecutor:
    """
    Executes on the machine opsboot runs on.

    Commands for another account go through ``sudo -u <user> -H`` when sudo
    is installed, otherwise ``su - <user> -c``. Files are written by the
    invoking process and then chowned.
    """

    name = "localhost"
    supports_interactive = True

    def __init__(self, label: str = "local"):
        self.label = label

    # ------------------ commands ------------------

    def _argv(self, cmd: Sequence[str], as_user: Optional[str], env: Optional[Mapping[str, str]]) -> List[str]:
        argv = [*env_prefix(env), *map(str, cmd)]
        if not as_user or as_user == self.current_user():
            return argv
        if shutil.which("sudo"):
            return ["sudo", "-u", as_user, "-H", "--", *argv]
        return ["su", "-", as_user, "-c", shlex.join(argv)]

    def run(
        self,
        cmd: Sequence[str],
        *,
        as_user: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
        check: bool = False,
        interactive: bool = False,
    ) -> CommandResult:
        argv = self._argv(cmd, as_user, env)
        log.debug(f"[{self.label}] $ {shlex.join(argv)}")

        start = time.time()
        try:
            if interactive:
                cp = subprocess.run(argv, check=False)
                result = CommandResult(argv, cp.returncode)
            else:
                cp = subprocess.run(argv, capture_output=True, text=True, check=False)
                result = CommandResult(argv, cp.returncode, cp.stdout or "", cp.stderr or "")
        except FileNotFoundError as exc:
            result = CommandResult(argv, 127, "", str(exc))
        duration = time.time() - start

        if result.stdout:
            log.debug(f"[{self.label}][stdout]\n{result.stdout.rstrip()}")
        if result.stderr:
            log.debug(f"[{self.label}][stderr]\n{result.stderr.rstrip()}")
        log.debug(f"[{self.label}][exit {result.returncode}] ({duration:.2f}s)")

        if check and not result.ok:
            raise ExternalToolFailure(argv, result.returncode, result.stderr)
        return result

    def which(self, program: str) -> bool:
        return shutil.which(program) is not None

    def is_privileged(self) -> bool:
        return os.geteuid() == 0

    def current_user(self) -> str:
        return pwd.getpwuid(os.geteuid()).pw_name

    def hostname(self) -> str:
        return socket.gethostname().split(".", 1)[0]

    def home_dir(self, user: Optional[str] = None) -> str:
        if user is None:
            return str(Path.home())
        try:
            return pwd.getpwnam(user).pw_dir
        except KeyError:
            return f"/home/{user}"

    # ------------------ files ------------------

    def exists(self, path: str) -> bool:
        return Path(path).exists()

    def read_text(self, path: str) -> Optional[str]:
        try:
            return Path(path).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def write_text(self, path: str, content: str, *, mode: int, owner: Optional[str] = None) -> None:
        target = Path(path)
        tmp = target.with_name(f".{target.name}.opsboot-tmp")
        tmp.write_text(content, encoding="utf-8")
        os.chmod(tmp, mode)
        if owner and owner != self.current_user():
            pw = pwd.getpwnam(owner)
            os.chown(tmp, pw.pw_uid, pw.pw_gid)
        os.replace(tmp, target)
        log.debug(f"[{self.label}] wrote {path} (mode {oct(mode)[2:]}, owner {owner or 'unchanged'})")

    def list_dir(self, path: str) -> List[str]:
        p = Path(path)
        if not p.is_dir():
            return []
        return sorted(child.name for child in p.iterdir())

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

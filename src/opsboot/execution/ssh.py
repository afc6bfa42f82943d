# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/opsboot/execution/ssh.py

from __future__ import annotations

import itertools
import logging
import os
import shlex
import time
from typing import List, Mapping, Optional, Sequence

import paramiko

from opsboot.errors import ExternalToolFailure, OpsbootError, PreconditionError
from opsboot.utils.retry import RetryError, retry
from .interface import CommandResult, env_prefix
from .models import SshTarget

log = logging.getLogger("opsboot")

_counter = itertools.count(1)


def _q(s: str) -> str:
    """
    Quote for bash -lc.
    """
    return "'" + s.replace("'", "'\"'\"'") + "'"


def _load_pkey(path) -> Optional[paramiko.PKey]:
    if not path:
        return None
    path = os.path.expanduser(str(path))
    if not os.path.isfile(path):
        raise PreconditionError(f"SSH key not found: {path}")
    for key_cls in (paramiko.Ed25519Key, paramiko.RSAKey, paramiko.ECDSAKey):
        try:
            return key_cls.from_private_key_file(path)
        except paramiko.PasswordRequiredException:
            raise PreconditionError(
                f"SSH key {path} is encrypted; add it to ssh-agent and omit --ssh-key"
            ) from None
        except paramiko.SSHException:
            continue
    raise PreconditionError(f"Unsupported private key format for {path}")


def open_ssh(target: SshTarget, *, connect_timeout: float = 20.0, attempts: int = 3, delay: float = 5.0) -> "SshExecutor":
    pkey = _load_pkey(target.pkey_path)

    def _on_retry(attempt: int, exc: Exception) -> None:
        log.info(
            "[%s] SSH not ready (attempt %d/%d, %s: %s)",
            target.address, attempt, attempts, type(exc).__name__, exc,
        )

    @retry(
        retries=attempts,
        delay=delay,
        backoff=2.0,
        retry_on=(paramiko.SSHException, OSError),
        on_retry=_on_retry,
    )
    def _connect() -> paramiko.SSHClient:
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        client.connect(
            hostname=target.address,
            port=target.port,
            username=target.username,
            password=target.password if not pkey else None,
            pkey=pkey,
            timeout=connect_timeout,
            allow_agent=pkey is None,
            look_for_keys=pkey is None,
        )
        return client

    try:
        client = _connect()
    except RetryError as exc:
        raise PreconditionError(
            f"Cannot SSH into {target.address} as '{target.username}' "
            f"after {exc.attempts} attempt(s): {exc.__cause__}"
        ) from exc
    return SshExecutor(client, target)


class SshExecutor:
    """
    Executes on a remote host through paramiko.

    Every command runs under ``bash -lc``; with ``become`` it is wrapped in
    sudo (``-S`` when a become password is known, ``-n`` otherwise so a
    missing password fails instead of hanging). Files are uploaded over SFTP
    to a temp path and moved into place with ``install``.
    """

    supports_interactive = False

    def __init__(self, client: paramiko.SSHClient, target: SshTarget, cmd_timeout: Optional[float] = None):
        self.client = client
        self.target = target
        self.name = target.address
        self.cmd_timeout = cmd_timeout

    # ------------------ commands ------------------

    def _sudo(self, user: Optional[str] = None) -> str:
        flag = "-S" if self.target.become_password else "-n"
        who = f" -u {shlex.quote(user)}" if user else ""
        return f"sudo {flag} -H{who}"

    def _final_cmd(self, cmd: Sequence[str], as_user: Optional[str], env: Optional[Mapping[str, str]]) -> tuple[str, bool]:
        shell_cmd = shlex.join([*env_prefix(env), *map(str, cmd)])
        if as_user and as_user != self.target.username:
            return f"{self._sudo(as_user)} bash -lc {_q(shell_cmd)}", True
        if self.target.become and not as_user:
            return f"{self._sudo()} bash -lc {_q(shell_cmd)}", True
        return f"bash -lc {_q(shell_cmd)}", False

    def run(
        self,
        cmd: Sequence[str],
        *,
        as_user: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
        check: bool = False,
        interactive: bool = False,
    ) -> CommandResult:
        if interactive:
            raise OpsbootError(f"interactive commands are not supported over SSH ({self.name})")

        final_cmd, sudo = self._final_cmd(cmd, as_user, env)
        log.debug(f"[{self.name}] $ {final_cmd}")

        start = time.time()
        stdin, stdout, stderr = self.client.exec_command(final_cmd, timeout=self.cmd_timeout)
        if sudo and self.target.become_password:
            stdin.write(self.target.become_password + "\n")
            stdin.flush()
        out = stdout.read().decode("utf-8", errors="replace")
        err = stderr.read().decode("utf-8", errors="replace")
        rc = stdout.channel.recv_exit_status()
        duration = time.time() - start

        if out:
            log.debug(f"[{self.name}][stdout]\n{out.rstrip()}")
        if err:
            log.debug(f"[{self.name}][stderr]\n{err.rstrip()}")
        log.debug(f"[{self.name}][exit {rc}] ({duration:.2f}s)")

        result = CommandResult(list(map(str, cmd)), rc, out, err)
        if check and not result.ok:
            raise ExternalToolFailure(result.args, rc, err)
        return result

    def which(self, program: str) -> bool:
        return self.run(["sh", "-c", f"command -v {shlex.quote(program)}"]).ok

    def is_privileged(self) -> bool:
        if not self.target.become:
            return self.current_user() == "root"
        r = self.run(["id", "-u"])
        return r.ok and r.stdout.strip() == "0"

    def current_user(self) -> str:
        return self.target.username

    def hostname(self) -> str:
        r = self.run(["hostname", "-s"])
        return r.stdout.strip() or self.target.address

    def home_dir(self, user: Optional[str] = None) -> str:
        user = user or self.target.username
        r = self.run(["getent", "passwd", user])
        fields = r.stdout.strip().split(":")
        if r.ok and len(fields) >= 6 and fields[5]:
            return fields[5]
        return f"/home/{user}"

    # ------------------ files ------------------

    def exists(self, path: str) -> bool:
        return self.run(["test", "-e", path]).ok

    def read_text(self, path: str) -> Optional[str]:
        r = self.run(["cat", path])
        return r.stdout if r.ok else None

    def write_text(self, path: str, content: str, *, mode: int, owner: Optional[str] = None) -> None:
        tmp_remote = f"/tmp/.opsboot_tmp_{os.getpid()}_{next(_counter)}"
        sftp = self.client.open_sftp()
        try:
            with sftp.file(tmp_remote, "w") as f:
                f.write(content)
        finally:
            sftp.close()
        try:
            self.run(["install", "-m", oct(mode)[2:], tmp_remote, path], check=True)
            if owner:
                self.run(["chown", f"{owner}:", path], check=True)
        finally:
            self.run(["rm", "-f", tmp_remote])

    def list_dir(self, path: str) -> List[str]:
        r = self.run(["ls", "-1A", path])
        if not r.ok:
            return []
        return sorted(line for line in r.stdout.splitlines() if line.strip())

    def close(self) -> None:
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

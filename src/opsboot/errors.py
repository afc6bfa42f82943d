# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/opsboot/errors.py
from __future__ import annotations

from typing import Sequence


class OpsbootError(RuntimeError):
    """Base class for every failure the CLI reports to the operator."""


class PreconditionError(OpsbootError):
    """Raised before any mutation: missing privilege, argument, binary or key."""


class ExternalToolFailure(OpsbootError):
    """A fatal nonzero exit from apt, ssh-keygen, useradd, git, ..."""

    def __init__(self, cmd: Sequence[str], returncode: int, stderr: str = ""):
        self.cmd = list(cmd)
        self.returncode = returncode
        self.stderr = stderr
        msg = f"`{' '.join(self.cmd)}` failed (rc={returncode})"
        if stderr.strip():
            msg += f": {stderr.strip().splitlines()[-1]}"
        super().__init__(msg)


class RemoteAPIError(OpsbootError):
    """GitHub answered with something other than 201/422, or not at all."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class DownloadFailure(OpsbootError):
    """Fetching the registrar script failed. Never fatal to the pipeline."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to download {url}: {reason}")

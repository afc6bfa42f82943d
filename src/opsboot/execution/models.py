# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/opsboot/execution/models.py

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass
class SshTarget:
    """
    A host bootstrapped over SSH instead of locally.
    """
    address: str                  # IP or DNS to connect
    username: str                 # SSH username (needs sudo for `setup`)
    port: int = 22
    password: Optional[str] = None
    pkey_path: Optional[Path] = None
    become: bool = True           # wrap commands in sudo
    become_password: Optional[str] = None     # for sudo -S

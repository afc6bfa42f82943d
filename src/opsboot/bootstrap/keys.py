# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/opsboot/bootstrap/keys.py

from __future__ import annotations

import logging

from opsboot.config.models import KeyPair
from opsboot.execution.interface import HostExecutor

log = logging.getLogger("opsboot")


def ensure_key_pair(executor: HostExecutor, account: str | None, pair: KeyPair) -> bool:
    """
    Generate an Ed25519 pair (no passphrase) as the account unless the private
    key already exists. Existing pairs are never regenerated or rotated.
    A failing ssh-keygen is fatal. Returns True if a pair was generated.
    """
    generated = False
    if executor.exists(pair.private_path):
        log.info("SSH key %s already exists", pair.private_path)
    else:
        executor.run(
            ["ssh-keygen", "-t", "ed25519", "-C", pair.comment, "-f", pair.private_path, "-N", ""],
            as_user=account,
            check=True,
        )
        generated = True
        log.info("Generated SSH key %s (%s)", pair.private_path, pair.comment)

    fix_key_modes(executor, account, pair)
    return generated


def fix_key_modes(executor: HostExecutor, account: str | None, pair: KeyPair) -> None:
    executor.run(["chmod", "600", pair.private_path], as_user=account, check=True)
    if executor.exists(pair.public_path):
        executor.run(["chmod", "644", pair.public_path], as_user=account, check=True)

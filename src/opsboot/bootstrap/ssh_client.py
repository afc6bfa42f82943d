# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/opsboot/bootstrap/ssh_client.py

from __future__ import annotations

import logging
from typing import List, Sequence

from opsboot.config.models import RunConfig
from opsboot.execution.interface import HostExecutor
from opsboot.utils.ssh_config import HostStanza, SSHClientConfig

log = logging.getLogger("opsboot")


def github_stanza(identity_file: str) -> HostStanza:
    return HostStanza.host(
        "github.com",
        ("HostName", "github.com"),
        ("IdentityFile", identity_file),
        ("IdentitiesOnly", "yes"),
        ("User", "git"),
        comment="GitHub configuration",
    )


def netsrv_stanza(identity_file: str, user: str) -> HostStanza:
    return HostStanza.host(
        "netsrv*",
        ("IdentityFile", identity_file),
        ("User", user),
        comment="Network servers configuration",
    )


def stanzas_for(cfg: RunConfig) -> List[HostStanza]:
    return [
        github_stanza(cfg.deploy_key.private_path),
        netsrv_stanza(cfg.ops_key.private_path, cfg.ops_user),
    ]


def ensure_stanzas(
    executor: HostExecutor,
    config_path: str,
    stanzas: Sequence[HostStanza],
    *,
    owner: str | None,
    replace: bool = True,
) -> bool:
    """
    Upsert host stanzas into the account's SSH client config. The file is
    only written (mode 0600) when its content changes.

    With ``replace=False`` the stanzas are treated as one block: if any of
    their patterns already has a stanza, the file is left exactly as it is.
    """
    current = executor.read_text(config_path)
    conf = SSHClientConfig.parse(current or "")

    if not replace:
        present = [s for s in (conf.get(st.pattern, st.keyword) for st in stanzas) if s is not None]
        if present:
            for stanza in present:
                log.info(
                    "SSH config %s already has %s %s (IdentityFile=%s), leaving it",
                    config_path, stanza.keyword, stanza.pattern, stanza.option("IdentityFile"),
                )
            return False

    changed = False
    for stanza in stanzas:
        changed = conf.upsert(stanza, replace=replace) or changed

    if not changed:
        log.info("SSH config %s already up to date", config_path)
        return False

    executor.write_text(config_path, conf.render(), mode=0o600, owner=owner)
    log.info("SSH config %s written", config_path)
    return True

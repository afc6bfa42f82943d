# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/opsboot/bootstrap/fetch.py

from __future__ import annotations

import logging
from typing import Optional

import requests

from opsboot.errors import DownloadFailure
from opsboot.execution.interface import HostExecutor

log = logging.getLogger("opsboot")


def download(url: str, *, session: Optional[requests.Session] = None, timeout: float = 30.0) -> str:
    http = session or requests
    try:
        resp = http.get(url, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise DownloadFailure(url, str(exc)) from exc
    return resp.text


def fetch_script(
    executor: HostExecutor,
    url: str,
    dest: str,
    *,
    owner: str | None,
    session: Optional[requests.Session] = None,
    timeout: float = 30.0,
) -> bool:
    """
    Download ``url`` to ``dest`` on the target (mode 0755, owned by the
    account). A failed download is logged and reported as False; the
    caller decides whether to carry on.
    """
    try:
        body = download(url, session=session, timeout=timeout)
    except DownloadFailure as exc:
        log.error(str(exc))
        return False

    executor.write_text(dest, body, mode=0o755, owner=owner)
    log.info("Downloaded %s to %s", url, dest)
    return True

# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/opsboot/registrar/github.py

from __future__ import annotations

import logging
from typing import Optional

import requests

from opsboot.errors import RemoteAPIError
from .models import RegistrationStatus

log = logging.getLogger("opsboot")


class GitHubDeployKeys:
    """
    POST /repos/{org}/{repo}/keys. Only the status code matters; the
    response body is discarded.
    """

    def __init__(
        self,
        api_url: str = "https://api.github.com",
        *,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
    ):
        self.api_url = api_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def keys_url(self, org: str, repo: str) -> str:
        return f"{self.api_url}/repos/{org}/{repo}/keys"

    def add_key(self, org: str, repo: str, *, title: str, key: str, token: str) -> RegistrationStatus:
        url = self.keys_url(org, repo)
        log.debug("POST %s title=%s", url, title)
        try:
            resp = self.session.post(
                url,
                headers={
                    "Authorization": f"token {token}",
                    "Accept": "application/vnd.github+json",
                },
                json={"title": title, "key": key, "read_only": True},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise RemoteAPIError(f"Failed to reach GitHub API: {exc}") from exc

        code = resp.status_code
        log.debug("POST %s -> %s", url, code)
        if code == 201:
            return RegistrationStatus.CREATED
        if code == 422:
            return RegistrationStatus.ALREADY_EXISTS
        raise RemoteAPIError(f"Failed to add key. HTTP status: {code}", status_code=code)

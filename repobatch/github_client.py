"""
github_client.py

Responsibility: Isolate all direct GitHub REST API interaction.

This module must be the only place that:
- Constructs GitHub REST endpoints
- Sends HTTP requests to api.github.com
- Interprets GitHub API responses / error payloads

Account selection, git commands and reconciliation decisions live elsewhere.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import requests

from repobatch.errors import GitHubError
from repobatch.lists import ProjectSpec


@dataclass(frozen=True)
class RemoteRepo:
    """Point-in-time snapshot of a repository as GitHub reports it."""

    owner: str
    name: str
    description: str | None
    private: bool
    fork: bool
    clone_url: str = ""
    ssh_url: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def remote_url(self, protocol: str = "https") -> str:
        return self.ssh_url if protocol == "ssh" and self.ssh_url else self.clone_url


def _repo_from_payload(owner: str, name: str, data: dict[str, Any]) -> RemoteRepo:
    return RemoteRepo(
        owner=str((data.get("owner") or {}).get("login") or owner),
        name=str(data.get("name") or name),
        description=data.get("description"),
        private=bool(data.get("private")),
        fork=bool(data.get("fork")),
        clone_url=str(data.get("clone_url") or ""),
        ssh_url=str(data.get("ssh_url") or ""),
    )


def create_body(spec: ProjectSpec, description: str | None = None) -> dict[str, Any]:
    """
    Translate a project's flags into a repository-creation payload.
    """
    body: dict[str, Any] = {
        "name": spec.name,
        "visibility": spec.visibility,
        "private": spec.visibility != "public",
        "auto_init": False,
    }
    desc = spec.description if description is None else description
    if desc:
        body["description"] = desc
    if spec.get("--homepage"):
        body["homepage"] = spec.get("--homepage")
    if spec.get("--license"):
        body["license_template"] = spec.get("--license")
    if spec.get("--gitignore"):
        body["gitignore_template"] = spec.get("--gitignore")
    if spec.has("--disable-issues"):
        body["has_issues"] = False
    if spec.has("--disable-wiki"):
        body["has_wiki"] = False
    if spec.has("--template"):
        body["is_template"] = True
    return body


class GitHubClient:
    def __init__(self, token: str, api_base: str = "https://api.github.com", timeout: float = 30) -> None:
        if not token.strip():
            raise GitHubError("GitHub token is required.")
        self._token = token
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout
        self._viewer: str | None = None

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self._token}",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "repobatch",
        }

    def _request(self, method: str, path: str, *, json_body: dict[str, Any] | None = None) -> Any:
        url = f"{self._api_base}{path}"
        try:
            r = requests.request(method, url, headers=self._headers(), json=json_body, timeout=self._timeout)
        except requests.RequestException as e:
            raise GitHubError(f"GitHub API request failed {method} {path}: {e}") from e
        if r.status_code >= 400:
            try:
                payload = r.json()
            except ValueError:
                payload = {"message": r.text}
            message = payload.get("message", payload) if isinstance(payload, dict) else payload
            raise GitHubError(
                f"GitHub API error {r.status_code} {method} {path}: {message}",
                status_code=r.status_code,
            )
        if r.status_code == 204:
            return None
        try:
            return r.json()
        except ValueError as e:
            raise GitHubError(
                f"GitHub API returned a non-JSON body {r.status_code} {method} {path}",
                status_code=r.status_code,
            ) from e

    def viewer_login(self, *, refresh: bool = False) -> str:
        if self._viewer is None or refresh:
            viewer = self._request("GET", "/user")
            self._viewer = str(viewer.get("login") or "")
        return self._viewer

    def get_repo(self, owner: str, name: str) -> RemoteRepo | None:
        """
        Return the repository snapshot if it exists and is visible; otherwise None.
        """
        try:
            data = self._request("GET", f"/repos/{owner}/{name}")
        except GitHubError as e:
            if e.status_code == 404:
                return None
            raise
        return _repo_from_payload(owner, name, data)

    def create_repo(self, owner: str, spec: ProjectSpec, *, description: str | None = None) -> RemoteRepo:
        """
        Create a repository under either:
        - the authenticated user (if owner matches the viewer login), OR
        - an organization (if owner is an org).
        """
        body = create_body(spec, description)

        if owner.lower() == self.viewer_login().lower():
            data = self._request("POST", "/user/repos", json_body=body)
        else:
            data = self._request("POST", f"/orgs/{owner}/repos", json_body=body)
        return _repo_from_payload(owner, spec.name, data)

    def edit_description(self, owner: str, name: str, description: str) -> RemoteRepo:
        data = self._request("PATCH", f"/repos/{owner}/{name}", json_body={"description": description})
        return _repo_from_payload(owner, name, data)

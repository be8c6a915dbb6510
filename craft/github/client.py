"""GitHub REST API client for the release endpoints craft uses.

This module provides:
- GitHubClient: Protocol for the release API (injectable for tests)
- RealGitHubClient: Implementation over urllib
- MockGitHubClient: In-memory implementation for testing
"""

from __future__ import annotations

import http.client
import json
import os
import re
import ssl
import threading
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from craft import __version__
from craft.core.result import Err, Ok, Result
from craft.core.structured import StrDict, as_obj_list, as_str_dict, get_str

__all__ = [
    "API_URL",
    "ASSETS_PER_PAGE",
    "GitHubApiError",
    "GitHubClient",
    "GitHubErrorDetail",
    "MockGitHubClient",
    "RealGitHubClient",
    "asset_name_conflict",
    "token_from_env",
    "upload_endpoint",
]

API_URL = "https://api.github.com"
ASSETS_PER_PAGE = 50

_URI_TEMPLATE_RE = re.compile(r"\{[^}]*\}$")


@dataclass(frozen=True, slots=True)
class GitHubErrorDetail:
    """One entry of the ``errors`` array in a GitHub error response."""

    resource: str | None = None
    code: str | None = None
    field: str | None = None
    message: str | None = None


@dataclass(frozen=True, slots=True)
class GitHubApiError:
    """Failed API call.

    Attributes:
        url: Request URL
        status: HTTP status code (0 for network errors)
        message: Top-level ``message`` from the response, or the transport error
        errors: Structured validation errors, if the API returned any
    """

    url: str
    status: int
    message: str
    errors: tuple[GitHubErrorDetail, ...] = ()

    @property
    def is_asset_name_conflict(self) -> bool:
        """True if a release asset with the same name already exists."""
        return self.status == 422 and any(
            e.resource == "ReleaseAsset" and e.code == "already_exists" and e.field == "name"
            for e in self.errors
        )

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"


def token_from_env() -> str | None:
    return os.environ.get("GITHUB_TOKEN") or os.environ.get("GITHUB_API_TOKEN") or None


@runtime_checkable
class GitHubClient(Protocol):
    """Release-related subset of the GitHub REST API."""

    def get_repository(self, owner: str, repo: str) -> Result[StrDict, GitHubApiError]: ...

    def get_combined_status(
        self, owner: str, repo: str, ref: str
    ) -> Result[StrDict, GitHubApiError]: ...

    def create_release(
        self, owner: str, repo: str, payload: StrDict
    ) -> Result[StrDict, GitHubApiError]: ...

    def update_release(
        self, owner: str, repo: str, release_id: int, payload: StrDict
    ) -> Result[StrDict, GitHubApiError]: ...

    def list_release_assets(
        self, owner: str, repo: str, release_id: int, *, per_page: int = ASSETS_PER_PAGE
    ) -> Result[list[StrDict], GitHubApiError]: ...

    def delete_release_asset(
        self, owner: str, repo: str, asset_id: int
    ) -> Result[None, GitHubApiError]: ...

    def upload_release_asset(
        self, upload_url: str, name: str, data: bytes, content_type: str
    ) -> Result[StrDict, GitHubApiError]: ...


def _parse_error(url: str, status: int, body: bytes, fallback: str) -> GitHubApiError:
    try:
        obj: object = json.loads(body.decode("utf-8")) if body else None
    except (json.JSONDecodeError, UnicodeDecodeError):
        obj = None

    data = as_str_dict(obj)
    if data is None:
        return GitHubApiError(url=url, status=status, message=fallback)

    details: list[GitHubErrorDetail] = []
    for item in as_obj_list(data.get("errors")) or []:
        d = as_str_dict(item)
        if d is None:
            continue
        details.append(
            GitHubErrorDetail(
                resource=get_str(d, "resource"),
                code=get_str(d, "code"),
                field=get_str(d, "field"),
                message=get_str(d, "message"),
            )
        )
    return GitHubApiError(
        url=url,
        status=status,
        message=get_str(data, "message") or fallback,
        errors=tuple(details),
    )


def upload_endpoint(upload_url: str, name: str) -> str:
    """Expand the ``{?name,label}`` template GitHub returns for uploads."""
    base = _URI_TEMPLATE_RE.sub("", upload_url)
    return f"{base}?{urllib.parse.urlencode({'name': name})}"


class RealGitHubClient:
    """GitHub client over urllib.

    Handles:
    - Token authentication
    - JSON request and response bodies
    - Structured error payloads (``message`` plus ``errors``)
    - Asset list pagination
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        api_url: str = API_URL,
        timeout: float = 60.0,
        upload_timeout: float = 30 * 60.0,
    ) -> None:
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.upload_timeout = upload_timeout
        self._ssl_context = ssl.create_default_context()

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": f"craft/{__version__}",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(
        self,
        method: str,
        url: str,
        *,
        json_body: StrDict | None = None,
        data: bytes | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> Result[object, GitHubApiError]:
        all_headers = self._headers()
        if json_body is not None:
            data = json.dumps(json_body).encode("utf-8")
            all_headers["Content-Type"] = "application/json"
        if headers:
            all_headers.update(headers)

        req = urllib.request.Request(url, data=data, headers=all_headers, method=method)
        try:
            with urllib.request.urlopen(
                req,
                timeout=timeout or self.timeout,
                context=self._ssl_context,
            ) as response:
                raw = response.read()
        except urllib.error.HTTPError as e:
            return Err(_parse_error(url, e.code, e.read(), str(e.reason)))
        except urllib.error.URLError as e:
            return Err(GitHubApiError(url=url, status=0, message=str(e.reason)))
        except TimeoutError:
            return Err(GitHubApiError(url=url, status=0, message="Request timed out"))
        except ValueError as e:
            return Err(GitHubApiError(url=url, status=0, message=str(e)))
        except http.client.HTTPException as e:
            return Err(GitHubApiError(url=url, status=0, message=f"{type(e).__name__}: {e}"))
        except OSError as e:
            return Err(GitHubApiError(url=url, status=0, message=str(e)))

        if not raw:
            return Ok(None)
        try:
            return Ok(json.loads(raw.decode("utf-8")))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return Err(GitHubApiError(url=url, status=0, message=f"JSON parse error: {e}"))

    def _object(self, result: Result[object, GitHubApiError], url: str) -> Result[StrDict, GitHubApiError]:
        if isinstance(result, Err):
            return result
        data = as_str_dict(result.value)
        if data is None:
            return Err(GitHubApiError(url=url, status=0, message="Expected JSON object"))
        return Ok(data)

    def get_repository(self, owner: str, repo: str) -> Result[StrDict, GitHubApiError]:
        url = f"{self.api_url}/repos/{owner}/{repo}"
        return self._object(self._request("GET", url), url)

    def get_combined_status(self, owner: str, repo: str, ref: str) -> Result[StrDict, GitHubApiError]:
        url = f"{self.api_url}/repos/{owner}/{repo}/commits/{urllib.parse.quote(ref)}/status"
        return self._object(self._request("GET", url), url)

    def create_release(self, owner: str, repo: str, payload: StrDict) -> Result[StrDict, GitHubApiError]:
        url = f"{self.api_url}/repos/{owner}/{repo}/releases"
        return self._object(self._request("POST", url, json_body=payload), url)

    def update_release(
        self, owner: str, repo: str, release_id: int, payload: StrDict
    ) -> Result[StrDict, GitHubApiError]:
        url = f"{self.api_url}/repos/{owner}/{repo}/releases/{release_id}"
        return self._object(self._request("PATCH", url, json_body=payload), url)

    def list_release_assets(
        self, owner: str, repo: str, release_id: int, *, per_page: int = ASSETS_PER_PAGE
    ) -> Result[list[StrDict], GitHubApiError]:
        """List every asset of a release, including unfinished uploads."""
        out: list[StrDict] = []
        page = 1
        while True:
            url = (
                f"{self.api_url}/repos/{owner}/{repo}/releases/{release_id}/assets"
                f"?per_page={per_page}&page={page}"
            )
            result = self._request("GET", url)
            if isinstance(result, Err):
                return result
            items = as_obj_list(result.value)
            if items is None:
                return Err(GitHubApiError(url=url, status=0, message="Expected JSON array"))
            out.extend(d for d in (as_str_dict(i) for i in items) if d is not None)
            if len(items) < per_page:
                return Ok(out)
            page += 1

    def delete_release_asset(self, owner: str, repo: str, asset_id: int) -> Result[None, GitHubApiError]:
        url = f"{self.api_url}/repos/{owner}/{repo}/releases/assets/{asset_id}"
        result = self._request("DELETE", url)
        if isinstance(result, Err):
            return result
        return Ok(None)

    def upload_release_asset(
        self, upload_url: str, name: str, data: bytes, content_type: str
    ) -> Result[StrDict, GitHubApiError]:
        url = upload_endpoint(upload_url, name)
        result = self._request(
            "POST",
            url,
            data=data,
            headers={"Content-Type": content_type, "Content-Length": str(len(data))},
            timeout=self.upload_timeout,
        )
        return self._object(result, url)


@dataclass
class MockGitHubClient:
    """In-memory GitHub for tests.

    Releases and assets live in dicts. ``upload_errors`` is a queue of errors
    returned by the next uploads before they start succeeding;
    ``reported_sizes`` overrides the size the fake API reports for an asset
    name. All calls are recorded in ``calls`` as ``(method, detail)``.
    """

    default_branch: str = "main"
    commit_state: str = "success"
    releases: dict[int, StrDict] = field(default_factory=dict)
    assets: dict[int, list[StrDict]] = field(default_factory=dict)
    upload_errors: list[GitHubApiError] = field(default_factory=list)
    reported_sizes: dict[str, int] = field(default_factory=dict)
    fail: dict[str, GitHubApiError] = field(default_factory=dict)
    calls: list[tuple[str, str]] = field(default_factory=list)
    _next_id: int = 1
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def _record(self, method: str, detail: str) -> GitHubApiError | None:
        with self._lock:
            self.calls.append((method, detail))
        return self.fail.get(method)

    def _new_id(self) -> int:
        with self._lock:
            n = self._next_id
            self._next_id += 1
            return n

    def count(self, method: str) -> int:
        return sum(1 for m, _ in self.calls if m == method)

    def get_repository(self, owner: str, repo: str) -> Result[StrDict, GitHubApiError]:
        error = self._record("get_repository", f"{owner}/{repo}")
        if error is not None:
            return Err(error)
        return Ok({"full_name": f"{owner}/{repo}", "default_branch": self.default_branch})

    def get_combined_status(self, owner: str, repo: str, ref: str) -> Result[StrDict, GitHubApiError]:
        error = self._record("get_combined_status", ref)
        if error is not None:
            return Err(error)
        return Ok({"sha": ref, "state": self.commit_state})

    def create_release(self, owner: str, repo: str, payload: StrDict) -> Result[StrDict, GitHubApiError]:
        error = self._record("create_release", str(payload.get("tag_name")))
        if error is not None:
            return Err(error)
        release_id = self._new_id()
        release: StrDict = {
            **payload,
            "id": release_id,
            "upload_url": f"https://uploads.example.test/releases/{release_id}/assets{{?name,label}}",
        }
        self.releases[release_id] = release
        self.assets[release_id] = []
        return Ok(release)

    def update_release(
        self, owner: str, repo: str, release_id: int, payload: StrDict
    ) -> Result[StrDict, GitHubApiError]:
        error = self._record("update_release", str(release_id))
        if error is not None:
            return Err(error)
        self.releases[release_id].update(payload)
        return Ok(self.releases[release_id])

    def list_release_assets(
        self, owner: str, repo: str, release_id: int, *, per_page: int = ASSETS_PER_PAGE
    ) -> Result[list[StrDict], GitHubApiError]:
        error = self._record("list_release_assets", str(release_id))
        if error is not None:
            return Err(error)
        with self._lock:
            return Ok(list(self.assets.get(release_id, [])))

    def delete_release_asset(self, owner: str, repo: str, asset_id: int) -> Result[None, GitHubApiError]:
        error = self._record("delete_release_asset", str(asset_id))
        if error is not None:
            return Err(error)
        with self._lock:
            for assets in self.assets.values():
                assets[:] = [a for a in assets if a.get("id") != asset_id]
        return Ok(None)

    def upload_release_asset(
        self, upload_url: str, name: str, data: bytes, content_type: str
    ) -> Result[StrDict, GitHubApiError]:
        error = self._record("upload_release_asset", name)
        if error is not None:
            return Err(error)
        release_id = int(upload_url.rsplit("/releases/", 1)[1].split("/", 1)[0])
        with self._lock:
            if self.upload_errors:
                scripted = self.upload_errors.pop(0)
                if scripted.is_asset_name_conflict:
                    self._leave_orphan(release_id, name)
                return Err(scripted)
        asset: StrDict = {
            "id": self._new_id(),
            "name": name,
            "size": self.reported_sizes.get(name, len(data)),
            "content_type": content_type,
            "browser_download_url": f"https://example.test/download/{name}",
        }
        with self._lock:
            self.assets.setdefault(release_id, []).append(asset)
        return Ok(asset)

    def _leave_orphan(self, release_id: int, name: str) -> None:
        assets = self.assets.setdefault(release_id, [])
        if not any(a.get("name") == name for a in assets):
            assets.append({"id": 10_000 + len(self.calls), "name": name, "size": 0, "state": "starter"})


def asset_name_conflict(name: str = "asset") -> GitHubApiError:
    """The error GitHub returns when an asset with ``name`` already exists."""
    return GitHubApiError(
        url=f"https://uploads.example.test/assets?name={name}",
        status=422,
        message="Validation Failed",
        errors=(GitHubErrorDetail(resource="ReleaseAsset", code="already_exists", field="name"),),
    )

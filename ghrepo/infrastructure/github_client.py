from __future__ import annotations

import logging
from typing import Any, AsyncIterable

import httpx

from ghrepo.domain.entities import Release, ReleaseAsset, RemoteRepositoryRecord, RepositoryUpdate
from ghrepo.domain.errors import AssetUploadStatusError, GitHubAPIError, RepositoryNotFoundError
from ghrepo.domain.interfaces import IRepoHost

log = logging.getLogger(__name__)

GITHUB_API_URL    = "https://api.github.com"
GITHUB_UPLOAD_URL = "https://uploads.github.com"
API_VERSION       = "2022-11-28"
MAX_PER_PAGE      = 100
DEFAULT_TIMEOUT   = 30.0


class GitHubClient(IRepoHost):
    """
    Concrete implementation of IRepoHost for GitHub's REST API.

    The constructor receives an httpx.AsyncClient (injected) rather than
    creating one internally. The caller owns its lifecycle, and tests can
    hand in a client built on httpx.MockTransport.

    No retries happen here: a failed call raises and the caller decides.
    """

    def __init__(
        self,
        token: str,
        client: httpx.AsyncClient,
        api_url: str = GITHUB_API_URL,
        upload_url: str = GITHUB_UPLOAD_URL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._client     = client
        self._api_url    = api_url.rstrip("/")
        self._upload_url = upload_url.rstrip("/")
        self._timeout    = timeout
        self._headers = {
            "Authorization":        f"Bearer {token}",
            "Accept":               "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
        }

    # Anti-Corruption Layer
    @staticmethod
    def _parse_repo(node: dict) -> RemoteRepositoryRecord | None:
        """
        Translate GitHub's repository JSON into our RemoteRepositoryRecord.
        If GitHub renames a field, fix it HERE only.
        """
        try:
            topics = node.get("topics")
            return RemoteRepositoryRecord(
                owner                  = node["owner"]["login"],
                name                   = node["name"],
                description            = node.get("description"),
                topics                 = tuple(topics) if topics is not None else None,
                archived               = node.get("archived"),
                homepage               = node.get("homepage"),
                private                = node.get("private"),
                visibility             = node.get("visibility"),
                default_branch         = node.get("default_branch"),
                has_issues             = node.get("has_issues"),
                has_projects           = node.get("has_projects"),
                has_wiki               = node.get("has_wiki"),
                is_template            = node.get("is_template"),
                allow_squash_merge     = node.get("allow_squash_merge"),
                allow_merge_commit     = node.get("allow_merge_commit"),
                allow_rebase_merge     = node.get("allow_rebase_merge"),
                delete_branch_on_merge = node.get("delete_branch_on_merge"),
                raw                    = node,
            )
        except (KeyError, TypeError) as exc:
            log.debug("Skipping malformed repository node %s: %s", node.get("id"), exc)
            return None

    @staticmethod
    def _parse_release(node: dict) -> Release:
        return Release(
            id         = node["id"],
            tag_name   = node["tag_name"],
            name       = node.get("name"),
            draft      = node.get("draft", False),
            prerelease = node.get("prerelease", False),
            upload_url = node.get("upload_url"),
            raw        = node,
        )

    @staticmethod
    def _parse_asset(node: dict) -> ReleaseAsset:
        return ReleaseAsset(
            id                   = node["id"],
            name                 = node["name"],
            size                 = node.get("size", 0),
            content_type         = node.get("content_type"),
            browser_download_url = node.get("browser_download_url"),
            raw                  = node,
        )

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.text or response.reason_phrase
        if isinstance(data, dict) and data.get("message"):
            return data["message"]
        return response.reason_phrase

    @staticmethod
    def _next_page(response: httpx.Response) -> int:
        """
        Page number from the Link: rel="next" header, 0 when there is none.
        A next link without a usable page number is an error, not the end.
        """
        url = response.links.get("next", {}).get("url")
        if not url:
            return 0
        page = httpx.URL(url).params.get("page", "")
        if not page.isdigit() or int(page) < 1:
            raise GitHubAPIError(response.status_code, f"next page link without a page number: {url}", response.text)
        return int(page)

    async def _request(self, method: str, path: str, expected: tuple[int, ...] = (200,), **kwargs: Any) -> httpx.Response:
        response = await self._client.request(
            method,
            f"{self._api_url}{path}",
            headers=self._headers,
            timeout=self._timeout,
            **kwargs,
        )
        if response.status_code not in expected:
            raise GitHubAPIError(response.status_code, self._error_message(response), response.text)
        return response

    def _repo_or_raise(self, response: httpx.Response) -> RemoteRepositoryRecord:
        record = self._parse_repo(response.json())
        if record is None:
            raise GitHubAPIError(response.status_code, "malformed repository payload", response.text)
        return record

    # IRepoHost implementation
    async def get_repository(self, owner: str, name: str) -> RemoteRepositoryRecord:
        try:
            response = await self._request("GET", f"/repos/{owner}/{name}")
        except GitHubAPIError as exc:
            if exc.status == 404:
                raise RepositoryNotFoundError(exc.status, exc.message, exc.body) from exc
            raise
        return self._repo_or_raise(response)

    async def _list_page(self, path: str, page: int, per_page: int) -> tuple[list[RemoteRepositoryRecord], int]:
        response = await self._request(
            "GET", path, params={"page": page, "per_page": min(per_page, MAX_PER_PAGE)}
        )
        records = [parsed for node in response.json() if (parsed := self._parse_repo(node)) is not None]
        return records, self._next_page(response)

    async def list_repositories_by_user(self, user: str, page: int, per_page: int = MAX_PER_PAGE) -> tuple[list[RemoteRepositoryRecord], int]:
        return await self._list_page(f"/users/{user}/repos", page, per_page)

    async def list_repositories_by_org(self, org: str, page: int, per_page: int = MAX_PER_PAGE) -> tuple[list[RemoteRepositoryRecord], int]:
        return await self._list_page(f"/orgs/{org}/repos", page, per_page)

    async def create_repository(self, name: str, org: str | None = None, private: bool = True) -> RemoteRepositoryRecord:
        path = f"/orgs/{org}/repos" if org else "/user/repos"
        response = await self._request(
            "POST", path, expected=(201,),
            json={"name": name, "private": private, "visibility": "private" if private else "public"},
        )
        return self._repo_or_raise(response)

    async def edit_repository(self, owner: str, name: str, update: RepositoryUpdate) -> RemoteRepositoryRecord:
        response = await self._request("PATCH", f"/repos/{owner}/{name}", json=update.set_fields())
        return self._repo_or_raise(response)

    async def replace_topics(self, owner: str, name: str, topics: list[str]) -> list[str]:
        response = await self._request("PUT", f"/repos/{owner}/{name}/topics", json={"names": topics})
        return list(response.json().get("names", []))

    async def get_latest_release(self, owner: str, name: str) -> Release:
        response = await self._request("GET", f"/repos/{owner}/{name}/releases/latest")
        return self._parse_release(response.json())

    async def create_release(
        self,
        owner: str,
        name: str,
        tag_name: str,
        *,
        release_name: str | None = None,
        body: str | None = None,
        draft: bool = False,
        prerelease: bool = False,
    ) -> Release:
        payload: dict[str, Any] = {"tag_name": tag_name, "draft": draft, "prerelease": prerelease}
        if release_name is not None:
            payload["name"] = release_name
        if body is not None:
            payload["body"] = body
        response = await self._request("POST", f"/repos/{owner}/{name}/releases", expected=(201,), json=payload)
        return self._parse_release(response.json())

    async def upload_release_asset(
        self,
        owner: str,
        name: str,
        release_id: int,
        asset_name: str,
        content: AsyncIterable[bytes],
        size: int,
        content_type: str,
    ) -> ReleaseAsset:
        """
        POST the asset body to the uploads host.

        Content-Length is set to `size` explicitly so httpx does not fall
        back to chunked encoding; GitHub rejects asset uploads without it.
        Only 201 Created counts as success; any other status (200
        included) raises AssetUploadStatusError with the body verbatim.
        """
        response = await self._client.post(
            f"{self._upload_url}/repos/{owner}/{name}/releases/{release_id}/assets",
            params={"name": asset_name},
            headers={
                **self._headers,
                "Content-Type":   content_type,
                "Content-Length": str(size),
            },
            content=content,
            timeout=self._timeout,
        )
        if response.status_code != httpx.codes.CREATED:
            raise AssetUploadStatusError(response.status_code, response.reason_phrase, response.text)

        return self._parse_asset(response.json())

"""Release source implementations."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Protocol
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from services.update.constants import (
    GENERIC_ASSET_SUFFIX,
    GITHUB_API_URL,
    GITHUB_LATEST_RELEASE_ENDPOINT,
    PREFERRED_ASSET_SUFFIX,
    UPLOADED_ASSET_STATE,
)
from services.update.models import ReleaseFetchError, UpdaterUsageError
from services.update.versioning import SemanticVersion, parse_release_tag


_LOGGER = logging.getLogger(__name__)

_DEFAULT_TIMEOUT_SECONDS = 10.0
_DEFAULT_USER_AGENT = "alfred-workflow-updater"


class ReleaseSource(Protocol):
    """Protocol describing remote hosts that publish workflow releases.

    Implementations must be safe to ``copy.copy`` so a background worker can
    own its own instance.
    """

    project_id: str

    def fetch_latest_release(self) -> tuple[SemanticVersion | str, str]:
        """Return the newest release's version and download URL without downloading it."""

    def latest_release(self) -> tuple[SemanticVersion, str]:
        """Same as :meth:`fetch_latest_release` with the version parsed."""


class BaseReleaseSource:
    """Supply :meth:`latest_release` on top of :meth:`fetch_latest_release`."""

    def __init__(self, project_id: str) -> None:
        self.project_id = str(project_id)

    def fetch_latest_release(self) -> tuple[SemanticVersion | str, str]:
        raise NotImplementedError

    def latest_release(self) -> tuple[SemanticVersion, str]:
        version, download_url = self.fetch_latest_release()
        if not isinstance(version, SemanticVersion):
            version = parse_release_tag(str(version))
        url = str(download_url or "").strip()
        if not url:
            raise ReleaseFetchError(f"Release {version} of {self.project_id} has no download URL")
        return version, url


class GitHubReleaseSource(BaseReleaseSource):
    """Fetch release metadata from the GitHub Releases API.

    Assets ending in ``alfred3workflow`` are preferred over ``alfredworkflow``;
    among several candidates the first one listed by GitHub wins.  The fetched
    release is kept in memory so the download URL can be derived again without
    another request.
    """

    def __init__(
        self,
        project_id: str,
        *,
        api_url: str = GITHUB_API_URL,
        timeout: float = _DEFAULT_TIMEOUT_SECONDS,
        user_agent: str = _DEFAULT_USER_AGENT,
    ) -> None:
        super().__init__(project_id)
        self._api_url = api_url if api_url.endswith("/") else f"{api_url}/"
        self._timeout = timeout
        self._user_agent = user_agent
        self._latest: dict[str, Any] | None = None

    @property
    def latest_release_url(self) -> str:
        return f"{self._api_url}{self.project_id}{GITHUB_LATEST_RELEASE_ENDPOINT}"

    def fetch_latest_release(self) -> tuple[SemanticVersion, str]:
        if self._latest is None:
            self.refresh()
        return self.latest_version(), self.downloadable_url()

    def refresh(self) -> None:
        """Query the latest-release endpoint and cache its payload."""

        payload = self._request_json(self.latest_release_url)
        if not isinstance(payload, dict):
            raise ReleaseFetchError("GitHub returned an unexpected release payload")
        tag = str(payload.get("tag_name") or "").strip()
        if not tag:
            raise ReleaseFetchError("GitHub release is missing a tag name")
        assets = payload.get("assets")
        self._latest = {
            "tag_name": tag,
            "assets": [asset for asset in assets if isinstance(asset, dict)]
            if isinstance(assets, list)
            else [],
        }
        _LOGGER.debug("GitHub reports release %s for %s", tag, self.project_id)

    def latest_version(self) -> SemanticVersion:
        if self._latest is None:
            self.refresh()
        assert self._latest is not None
        return parse_release_tag(self._latest["tag_name"])

    def downloadable_url(self) -> str:
        if self._latest is None:
            raise UpdaterUsageError(
                "No release item available; fetch the latest version first"
            )
        asset_url = _select_workflow_asset(self._latest["assets"])
        if asset_url is None:
            raise ReleaseFetchError(
                f"Release {self._latest['tag_name']} has no usable download url"
            )
        _LOGGER.debug("Selected release asset %s", asset_url)
        return asset_url

    def _request_json(self, url: str) -> Any:
        request = Request(
            url,
            headers={
                "Accept": "application/vnd.github+json",
                "User-Agent": self._user_agent,
            },
        )
        try:
            with urlopen(request, timeout=self._timeout) as response:  # nosec - GitHub API over HTTPS
                status = getattr(response, "status", 200)
                if not 200 <= int(status) < 300:
                    raise ReleaseFetchError(f"GitHub returned HTTP {status} for {url}")
                return json.load(response)
        except HTTPError as exc:
            raise ReleaseFetchError(f"GitHub returned HTTP {exc.code} for {url}") from exc
        except (OSError, URLError) as exc:
            raise ReleaseFetchError(f"Failed to query {url}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ReleaseFetchError(f"GitHub returned invalid JSON for {url}") from exc


class LocalFolderReleaseSource(BaseReleaseSource):
    """Serve release metadata from a local directory for testing.

    The folder holds a ``release.json`` with a ``version`` and either a
    ``download_url`` or a ``file`` relative to the folder.
    """

    def __init__(self, folder: Path, project_id: str = "local") -> None:
        super().__init__(project_id)
        self._folder = Path(folder)

    def fetch_latest_release(self) -> tuple[str, str]:
        metadata_path = self._folder / "release.json"
        try:
            data = json.loads(metadata_path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ReleaseFetchError(f"Local release metadata unavailable: {metadata_path}") from exc
        except json.JSONDecodeError as exc:
            raise ReleaseFetchError(f"Local release metadata is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ReleaseFetchError("Local release metadata must be an object")

        version = str(data.get("version") or "").strip()
        download_url = str(data.get("download_url") or "").strip()
        file_name = str(data.get("file") or "").strip()
        if not download_url and file_name:
            download_url = (self._folder / file_name).resolve().as_uri()
        if not version or not download_url:
            raise ReleaseFetchError(
                f"Local release metadata incomplete: version={version!r} url={download_url!r}"
            )

        _LOGGER.info("Local release %s will be served from %s", version, download_url)
        return version, download_url


def _select_workflow_asset(assets: Iterable[dict]) -> str | None:
    """Return the download URL of the preferred workflow bundle asset."""

    candidates: list[str] = []
    for asset in assets:
        if asset.get("state") != UPLOADED_ASSET_STATE:
            continue
        url = asset.get("browser_download_url")
        if not isinstance(url, str):
            continue
        if url.endswith(GENERIC_ASSET_SUFFIX) or url.endswith(PREFERRED_ASSET_SUFFIX):
            candidates.append(url)

    if not candidates:
        return None
    for url in candidates:
        if url.endswith(PREFERRED_ASSET_SUFFIX):
            return url
    return candidates[0]


__all__ = [
    "BaseReleaseSource",
    "GitHubReleaseSource",
    "LocalFolderReleaseSource",
    "ReleaseSource",
]

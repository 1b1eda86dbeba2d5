"""Utilities for downloading workflow release bundles."""

from __future__ import annotations

import logging
import shutil
from http.client import HTTPException
from pathlib import Path
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from services.update.constants import DOWNLOAD_CHUNK_SIZE
from services.update.models import DownloadError
from services.update.state import AvailableRelease


_LOGGER = logging.getLogger(__name__)

__all__ = ["download_release"]


def download_release(
    release: AvailableRelease,
    target_path: Path,
    *,
    timeout: float | None = None,
    user_agent: str | None = None,
) -> Path:
    """Stream ``release``'s bundle into ``target_path``, replacing any earlier download.

    A partially written file is removed before the error is raised.
    """

    _LOGGER.info(
        "Downloading release %s from %s",
        release.version,
        release.download_url,
    )
    headers = {"User-Agent": user_agent} if user_agent else {}
    request = Request(release.download_url, headers=headers)
    created = False
    try:
        target_path.parent.mkdir(parents=True, exist_ok=True)
        with urlopen(request, timeout=timeout) as response:  # nosec - release host over HTTPS
            status = getattr(response, "status", 200)
            if status is not None and not 200 <= int(status) < 300:
                raise DownloadError(
                    f"Release download returned HTTP {status} for {release.download_url}"
                )
            with target_path.open("wb") as destination:
                created = True
                shutil.copyfileobj(response, destination, DOWNLOAD_CHUNK_SIZE)
    except HTTPError as exc:
        raise DownloadError(
            f"Release download returned HTTP {exc.code} for {release.download_url}"
        ) from exc
    except (HTTPException, OSError, URLError) as exc:
        if created:
            _remove_partial(target_path)
        raise DownloadError(f"Failed to download release: {exc}") from exc
    _LOGGER.debug("Downloaded release %s to %s", release.version, target_path)
    return target_path


def _remove_partial(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        return
    except OSError:
        _LOGGER.warning("Unable to remove partial download %s", path, exc_info=True)

from collections.abc import Callable
from collections.abc import Sequence
from typing import Final

import httpx
from loguru import logger
from pydantic import Field
from pydantic import ValidationError

from nimbus.common.frozen_model import FrozenModel
from nimbus.common.pure import pure
from nimbus.errors import ReleaseFormatError
from nimbus.errors import ReleaseHTTPError
from nimbus.errors import ReleaseRequestError

GITHUB_ACCEPT_HEADER: Final[str] = "application/vnd.github.v3+json"


class ReleaseAsset(FrozenModel):
    """One downloadable file attached to an upstream release."""

    model_config = {"extra": "ignore"}

    name: str = Field(description="File name of the asset")
    browser_download_url: str = Field(description="Public download URL")


class ReleaseInfo(FrozenModel):
    """The parts of a GitHub release we use."""

    model_config = {"extra": "ignore"}

    tag_name: str | None = Field(default=None, description="Git tag the release was cut from")
    assets: tuple[ReleaseAsset, ...] = Field(description="Files attached to the release")


class GitHubReleaseClient(FrozenModel):
    """Fetches release metadata from the GitHub releases API."""

    timeout_seconds: float = Field(default=30.0, description="Timeout for a single metadata request")

    def fetch_release(self, url: str) -> ReleaseInfo:
        """Fetch the release at a releases/tags/<tag> URL.

        Raises ReleaseHTTPError for a non-200 answer, ReleaseRequestError when no
        answer arrives, and ReleaseFormatError when the body has no assets list.
        """
        logger.debug("Fetching release metadata from {}", url)
        try:
            response = httpx.get(url, headers={"Accept": GITHUB_ACCEPT_HEADER}, timeout=self.timeout_seconds)
        except httpx.HTTPError as e:
            raise ReleaseRequestError(url, str(e)) from e

        if response.status_code != 200:
            raise ReleaseHTTPError(url, response.status_code)

        try:
            return ReleaseInfo.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise ReleaseFormatError(f"Unexpected release metadata from {url}: {e}") from e


@pure
def find_asset(assets: Sequence[ReleaseAsset], predicate: Callable[[str], bool]) -> ReleaseAsset | None:
    """Return the first asset whose name satisfies predicate, in upstream order."""
    for asset in assets:
        if predicate(asset.name):
            return asset
    return None


@pure
def url_basename(url: str) -> str:
    """Last path segment of a download URL, ignoring any query string."""
    return httpx.URL(url).path.rstrip("/").rsplit("/", 1)[-1]

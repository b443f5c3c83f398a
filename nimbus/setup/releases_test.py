from typing import Any

import httpx
import pytest

from nimbus.errors import ReleaseFormatError
from nimbus.errors import ReleaseHTTPError
from nimbus.errors import ReleaseRequestError
from nimbus.setup.releases import GITHUB_ACCEPT_HEADER
from nimbus.setup.releases import GitHubReleaseClient
from nimbus.setup.releases import find_asset
from nimbus.setup.releases import url_basename
from nimbus.utils.testing import make_release

RELEASE_URL = "https://api.github.com/repos/macvmio/geranos/releases/tags/v0.7.5"


def _install_fake_get(monkeypatch: pytest.MonkeyPatch, response: httpx.Response | Exception) -> list[dict[str, Any]]:
    calls: list[dict[str, Any]] = []

    def fake_get(url: str, **kwargs: Any) -> httpx.Response:
        calls.append({"url": url, **kwargs})
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr("nimbus.setup.releases.httpx.get", fake_get)
    return calls


def test_fetch_release_parses_assets(monkeypatch: pytest.MonkeyPatch) -> None:
    body = {
        "tag_name": "v0.7.5",
        "assets": [
            {"name": "geranos_Darwin_arm64.tar.gz", "browser_download_url": "https://example.com/a", "size": 1},
        ],
    }
    calls = _install_fake_get(monkeypatch, httpx.Response(200, json=body))

    release = GitHubReleaseClient(timeout_seconds=5.0).fetch_release(RELEASE_URL)

    assert release.tag_name == "v0.7.5"
    assert [asset.name for asset in release.assets] == ["geranos_Darwin_arm64.tar.gz"]
    assert calls[0]["url"] == RELEASE_URL
    assert calls[0]["headers"] == {"Accept": GITHUB_ACCEPT_HEADER}
    assert calls[0]["timeout"] == 5.0


def test_non_200_raises_http_error_with_status(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_fake_get(monkeypatch, httpx.Response(404, json={"message": "Not Found"}))

    with pytest.raises(ReleaseHTTPError) as exc_info:
        GitHubReleaseClient().fetch_release(RELEASE_URL)

    assert exc_info.value.status_code == 404


def test_transport_failure_raises_request_error(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_fake_get(monkeypatch, httpx.ConnectError("connection refused"))

    with pytest.raises(ReleaseRequestError) as exc_info:
        GitHubReleaseClient().fetch_release(RELEASE_URL)

    assert "connection refused" in exc_info.value.reason


def test_body_without_assets_raises_format_error(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_fake_get(monkeypatch, httpx.Response(200, json={"message": "rate limited"}))

    with pytest.raises(ReleaseFormatError):
        GitHubReleaseClient().fetch_release(RELEASE_URL)


def test_find_asset_returns_first_match_in_order() -> None:
    release = make_release("a.txt", "b.tar.gz", "c.tar.gz")

    asset = find_asset(release.assets, lambda name: name.endswith(".tar.gz"))

    assert asset is not None
    assert asset.name == "b.tar.gz"


def test_find_asset_returns_none_without_match() -> None:
    assert find_asset(make_release("a.txt").assets, lambda name: name.endswith(".pkg")) is None


def test_url_basename_ignores_query_string() -> None:
    assert url_basename("https://example.com/dl/runner.tar.gz?token=abc") == "runner.tar.gz"


@pytest.mark.acceptance
def test_pinned_runner_release_has_linux_asset() -> None:
    release = GitHubReleaseClient().fetch_release(
        "https://api.github.com/repos/actions/runner/releases/tags/v2.321.0"
    )

    assert find_asset(release.assets, lambda name: "linux-x64" in name and name.endswith(".tar.gz")) is not None

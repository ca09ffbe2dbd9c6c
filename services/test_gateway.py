import httpx
import pytest

from services.gateway import FORBIDDEN_MESSAGE

HOME = "https://github.com/0Sycamores/nixos-config"
RAW_BASE = "https://raw.githubusercontent.com/0Sycamores/nixos-config/main"
NO_CACHE = "no-store, no-cache, must-revalidate, proxy-revalidate"


@pytest.mark.parametrize("path", ["/", "/install", f"/{HOME}", "/https://evil.example/x"])
def test_preflight_short_circuits_for_any_path(client, upstream, path):
    response = client.options(path)

    assert response.status_code == 204
    assert response.content == b""
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.headers["access-control-allow-methods"] == "GET, POST, HEAD, OPTIONS"
    assert response.headers["access-control-allow-headers"] == "*"
    assert upstream.requests == []


def test_named_route_proxies_install_script(client, upstream, request_logger):
    response = client.get("/install?ref=readme")

    assert response.status_code == 200
    assert response.content == upstream.content
    assert len(upstream.requests) == 1
    sent = upstream.requests[0]
    assert str(sent.url).startswith(f"{RAW_BASE}/scripts/install.sh?t=")
    assert sent.url.params["t"].isdigit()
    assert "ref" not in sent.url.params
    assert sent.headers["host"] == "raw.githubusercontent.com"
    assert sent.headers["referer"] == "https://github.com/"
    assert request_logger.routes[0][2].kind == "named"
    decision, status = request_logger.forwards[0]
    assert decision is request_logger.routes[0][2]
    assert decision.target_url == str(sent.url)
    assert status == 200


def test_allowed_embedded_url_is_relayed_with_query(client, upstream):
    response = client.get(f"/{HOME}/info/refs?service=git-upload-pack")

    assert response.status_code == 200
    assert len(upstream.requests) == 1
    assert str(upstream.requests[0].url) == f"{HOME}/info/refs?service=git-upload-pack"


@pytest.mark.parametrize(
    "path",
    [
        f"/{HOME}/%2e%2e/%2e%2e/someone-else/private/info/refs?service=git-upload-pack",
        f"/{HOME}/%2E%2E/%2e./someone-else/private/info/refs",
        f"/{HOME}/../../someone-else/private/info/refs",
    ],
)
def test_dot_segments_cannot_leave_the_allow_list(client, upstream, path):
    response = client.get(path)

    assert response.status_code == 403
    assert response.text == FORBIDDEN_MESSAGE
    assert upstream.requests == []


def test_dot_segments_inside_the_repository_are_resolved(client, upstream):
    response = client.get(f"/{HOME}/blob/%2e%2e/info/refs")

    assert response.status_code == 200
    assert str(upstream.requests[0].url) == f"{HOME}/info/refs"


@pytest.mark.parametrize(
    "path, sent_url",
    [
        (f"/{HOME}/blob/main/a%23b.txt", f"{HOME}/blob/main/a%23b.txt"),
        (f"/{HOME}/blob/main/a%3Fb.txt?plain=1", f"{HOME}/blob/main/a%3Fb.txt?plain=1"),
    ],
)
def test_encoded_delimiters_stay_in_the_embedded_path(client, upstream, path, sent_url):
    response = client.get(path)

    assert response.status_code == 200
    assert str(upstream.requests[0].url) == sent_url


def test_unlisted_embedded_url_is_forbidden_without_upstream_call(client, upstream):
    response = client.get("/https://github.com/someone-else/repo/info/refs")

    assert response.status_code == 403
    assert response.text == FORBIDDEN_MESSAGE
    assert response.headers["content-type"].startswith("text/plain")
    assert upstream.requests == []


@pytest.mark.parametrize("path", ["/", "/install/", "/htt://github.com/x", "/readme"])
def test_unrecognized_paths_redirect_home(client, upstream, path):
    response = client.get(path)

    assert response.status_code == 302
    assert response.headers["location"] == HOME
    assert response.content == b""
    assert upstream.requests == []


def test_response_status_and_body_round_trip_with_no_cache(client, upstream):
    upstream.status_code = 418
    upstream.content = bytes(range(256))
    upstream.headers = {
        "Content-Type": "application/octet-stream",
        "Cache-Control": "public, max-age=31536000",
        "Pragma": "cache",
        "Expires": "Wed, 21 Oct 2099 07:28:00 GMT",
    }

    response = client.get(f"/{RAW_BASE}/blob.bin")

    assert response.status_code == 418
    assert response.content == bytes(range(256))
    assert response.headers["content-type"] == "application/octet-stream"
    assert response.headers["cache-control"] == NO_CACHE
    assert response.headers["pragma"] == "no-cache"
    assert response.headers["expires"] == "0"
    assert response.headers["access-control-allow-origin"] == "*"


def test_identical_requests_each_reach_upstream(client, upstream):
    for _ in range(2):
        assert client.get(f"/{RAW_BASE}/flake.nix").status_code == 200

    assert len(upstream.requests) == 2


def test_upstream_failure_becomes_proxy_error(client, upstream, request_logger):
    upstream.error = httpx.ConnectError("Name or service not known")

    response = client.get("/install")

    assert response.status_code == 500
    assert response.text == "Proxy Error: Name or service not known"
    assert request_logger.errors[0][1] == 500


def test_get_and_head_never_carry_a_body(client, upstream):
    client.request("GET", f"/{RAW_BASE}/a", content=b"ignored")
    client.request("HEAD", f"/{RAW_BASE}/a", content=b"ignored")

    assert [r.method for r in upstream.requests] == ["GET", "HEAD"]
    assert all(r.content == b"" for r in upstream.requests)
    assert all("content-length" not in r.headers for r in upstream.requests)


def test_post_forwards_body_unchanged(client, upstream):
    payload = b"0032want 1234567890abcdef\n00000009done\n"

    response = client.post(
        f"/{HOME}/git-upload-pack",
        content=payload,
        headers={"Content-Type": "application/x-git-upload-pack-request"},
    )

    assert response.status_code == 200
    sent = upstream.requests[0]
    assert sent.method == "POST"
    assert sent.content == payload
    assert sent.headers["content-type"] == "application/x-git-upload-pack-request"
    assert sent.headers["host"] == "github.com"

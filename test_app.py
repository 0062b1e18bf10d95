"""Routing tests against the Flask test client."""
import pytest

import app as router
from app import create_app, is_traversal, mime_type_for
from conftest import INDEX_HTML, STYLE_CSS


@pytest.fixture
def client(stager):
    return create_app(stager.prepare()).test_client()


def assert_cors(resp):
    assert resp.headers["Access-Control-Allow-Origin"] == "*"
    assert resp.headers["Access-Control-Allow-Methods"] == "GET, OPTIONS"
    assert resp.headers["Access-Control-Allow-Headers"] == "*"


def test_root_serves_entry_file(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.headers["Content-Type"] == "text/html"
    assert resp.data == INDEX_HTML
    assert_cors(resp)


def test_index_html_by_name(client):
    resp = client.get("/index.html")
    assert resp.status_code == 200
    assert resp.data == INDEX_HTML


def test_existing_file_gets_its_content_type(client):
    resp = client.get("/style.css")
    assert resp.status_code == 200
    assert resp.headers["Content-Type"] == "text/css"
    assert resp.data == STYLE_CSS
    assert_cors(resp)


def test_missing_asset_falls_back_to_entry_file(client):
    """app.js was in the manifest but not the bundle; deep links get index.html too."""
    for path in ("/app.js", "/settings/profile"):
        resp = client.get(path)
        assert resp.status_code == 200
        assert resp.headers["Content-Type"] == "text/html"
        assert resp.data == INDEX_HTML
        assert_cors(resp)


@pytest.mark.parametrize("path", ["/../secret.txt", "/assets/../../secret.txt", "/%2e%2e/secret.txt", "/a/..\\secret.txt"])
def test_traversal_is_forbidden_without_disk_access(client, monkeypatch, path):
    def boom(*args, **kwargs):
        raise AssertionError("filesystem touched")

    monkeypatch.setattr(router, "safe_join", boom)
    resp = client.get(path)
    assert resp.status_code == 403
    assert "Access-Control-Allow-Origin" not in resp.headers


def test_dotted_filenames_are_not_traversal():
    assert not is_traversal("vendor/jquery..min.js")
    assert is_traversal("a/../b")
    assert is_traversal("..")


def test_404_when_entry_file_missing(tmp_path):
    root = tmp_path / "empty"
    root.mkdir()
    resp = create_app(root).test_client().get("/some/route")
    assert resp.status_code == 404
    assert resp.get_data(as_text=True) == "File not found: /some/route"
    assert_cors(resp)


def test_unexpected_error_is_500(client, monkeypatch):
    def broken(*args, **kwargs):
        raise OSError("disk on fire")

    monkeypatch.setattr(router, "safe_join", broken)
    resp = client.get("/style.css")
    assert resp.status_code == 500
    assert resp.get_data(as_text=True) == "Internal server error"


def test_options_preflight(client):
    resp = client.options("/style.css")
    assert resp.status_code == 204
    assert_cors(resp)


@pytest.mark.parametrize("method", ["POST", "PUT", "PATCH", "DELETE", "PROPFIND"])
def test_other_methods_are_served_like_get(client, method):
    resp = client.open("/", method=method)
    assert resp.status_code == 200
    assert resp.headers["Content-Type"] == "text/html"
    assert resp.data == INDEX_HTML
    assert_cors(resp)

    resp = client.open("/style.css", method=method)
    assert resp.status_code == 200
    assert resp.data == STYLE_CSS
    assert_cors(resp)


def test_post_traversal_still_forbidden(client):
    resp = client.post("/../secret.txt")
    assert resp.status_code == 403


def test_head_has_no_body(client):
    resp = client.head("/style.css")
    assert resp.status_code == 200
    assert resp.data == b""


@pytest.mark.parametrize("name,expected", [
    ("index.HTML", "text/html"),
    ("a.css", "text/css"),
    ("main.dart.js", "application/javascript"),
    ("manifest.json", "application/json"),
    ("icon.png", "image/png"),
    ("photo.jpg", "image/jpeg"),
    ("photo.jpeg", "image/jpeg"),
    ("anim.gif", "image/gif"),
    ("logo.svg", "image/svg+xml"),
    ("favicon.ico", "image/x-icon"),
    ("font.woff", "font/woff"),
    ("font.woff2", "font/woff2"),
    ("font.ttf", "font/ttf"),
    ("canvaskit.wasm", "application/wasm"),
    ("NOTICES", "application/octet-stream"),
    ("data.bin", "application/octet-stream"),
])
def test_mime_table(name, expected):
    assert mime_type_for(name) == expected

"""Tests for the click CLI (fake transport, no network)."""

import orjson
import pytest
from click.testing import CliRunner

from helpers import RecordingTransport, comment, err, ok, page, post
from treehole_exporter import cli
from treehole_exporter.credentials import ChainSource
from treehole_exporter.transport import AiohttpTransport, HttpxTransport

COMMENTS = "pku_comment_v3/42"


@pytest.fixture
def fake_transport(monkeypatch):
    """Patch the CLI to build a RecordingTransport with the given responses."""
    holder = {}

    def install(responses):
        transport = RecordingTransport(responses)

        def build(*args, **kwargs):
            holder["args"] = args
            return transport

        monkeypatch.setattr(cli, "build_transport", build)
        return transport

    install.holder = holder
    return install


THREAD = {
    ("pku/42", None): ok(post(pid=42)),
    (COMMENTS, 1): ok(page([comment(1, name="Alice"), comment(2, name="Bob")],
                           current_page=1, last_page=2, per_page=2)),
    (COMMENTS, 2): ok(page([comment(3, name="Alice")], current_page=2, last_page=2, per_page=2)),
}


class TestExport:
    def test_writes_aggregate(self, fake_transport, tmp_path):
        transport = fake_transport(THREAD)
        result = CliRunner().invoke(
            cli.main,
            ["export", "#42", "--output-dir", str(tmp_path), "--page-size", "2", "--no-progress"],
        )
        assert result.exit_code == 0, result.output
        assert "3 comments" in result.output

        files = list(tmp_path.glob("PKU树洞#42-*.json"))
        assert len(files) == 1
        data = orjson.loads(files[0].read_bytes())
        assert data["post"]["pid"] == 42
        assert [c["cid"] for c in data["comments"]] == [1, 2, 3]
        assert data["users"] == ["洞主", "Alice", "Bob"]
        assert transport.pages_requested(COMMENTS) == [1, 2]

    def test_failure_message(self, fake_transport, tmp_path):
        fake_transport({
            ("pku/42", None): ok(post(pid=42)),
            (COMMENTS, 1): err("未登录"),
        })
        result = CliRunner().invoke(
            cli.main, ["export", "42", "--output-dir", str(tmp_path), "--no-progress"],
        )
        assert result.exit_code == 1
        assert "未登录" in result.output
        assert list(tmp_path.iterdir()) == []

    def test_invalid_pid(self, fake_transport):
        fake_transport({})
        result = CliRunner().invoke(cli.main, ["export", "hello"])
        assert result.exit_code == 2
        assert "is not a post id" in result.output


class TestComments:
    def test_prints_json(self, fake_transport):
        fake_transport(THREAD)
        result = CliRunner().invoke(cli.main, ["comments", "42", "--page-size", "2", "--sort", "desc"])
        assert result.exit_code == 0, result.output
        rows = orjson.loads(result.output)
        assert [row["cid"] for row in rows] == [1, 2, 3]

    def test_passes_options_to_transport(self, fake_transport):
        fake_transport(THREAD)
        CliRunner().invoke(cli.main, ["comments", "42", "--transport", "aiohttp", "--token", "tok"])
        args = fake_transport.holder["args"]
        assert args[0] == "aiohttp"
        assert args[3] == "tok"


class TestBuildTransport:
    def test_httpx_with_overrides(self, tmp_path):
        cookie_file = tmp_path / "cookies.txt"
        cookie_file.write_text("pku_token=file; XSRF-TOKEN=x", encoding="utf-8")
        storage_file = tmp_path / "storage.json"
        storage_file.write_bytes(orjson.dumps({"pku-uuid": "dev-1"}))

        transport = cli.build_transport(
            "httpx", str(cookie_file), str(storage_file),
            "override", None, None, "http://localhost/api/", 5.0,
        )
        assert isinstance(transport, HttpxTransport)
        assert isinstance(transport.cookies, ChainSource)
        headers = transport.build_headers()
        assert headers["Authorization"] == "Bearer override"
        assert headers["X-XSRF-TOKEN"] == "x"
        assert headers["Uuid"] == "dev-1"
        assert transport.timeout == 5.0

    def test_aiohttp(self):
        transport = cli.build_transport("aiohttp", None, None, None, None, "dev-2", cli.API_BASE, None)
        assert isinstance(transport, AiohttpTransport)
        assert transport.build_headers()["Uuid"] == "dev-2"


class TestDescribeError:
    def test_http_status(self):
        from treehole_exporter.exceptions import HttpStatusError
        assert cli.describe_error(HttpStatusError(500, "Internal Server Error")) == \
            "server answered HTTP 500 Internal Server Error"

    def test_api_failure(self):
        from treehole_exporter.exceptions import ApiFailure
        assert cli.describe_error(ApiFailure("未登录")) == "server refused the request: 未登录"

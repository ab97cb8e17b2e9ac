"""
Unit tests for the built-in handlers.
"""

import dataclasses
import gzip
import io
import os
from pathlib import Path

import pytest

from streamhttp.config import ServerConfig
from streamhttp.handlers import (
    handle_download_file,
    handle_echo,
    handle_upload_file,
    handle_user_agent,
)
from streamhttp.http.headers import HeaderField
from streamhttp.http.payload import IncompleteBodyError, StreamedPayload
from streamhttp.http.request import HTTPRequest, HttpVerb
from streamhttp.http.status_codes import HTTPStatus


def make_request(path: str, *headers: HeaderField, body: bytes = None) -> HTTPRequest:
    """Helper building an already prefix-stripped request."""
    request = HTTPRequest(verb=HttpVerb.GET, path=path, headers=list(headers))
    if body is not None:
        request.verb = HttpVerb.POST
        request.body = StreamedPayload(io.BytesIO(body), owns_stream=False)
    return request


def drain(response) -> bytes:
    payload = response.payload
    try:
        return payload.stream.read()
    finally:
        payload.close()


requires_non_root = pytest.mark.skipif(
    hasattr(os, "geteuid") and os.geteuid() == 0,
    reason="root ignores file permissions",
)


class TestEcho:
    """Tests for handle_echo."""

    def test_echo(self, config: ServerConfig):
        response = handle_echo(config, make_request("abc"))

        assert response.status == HTTPStatus.OK
        assert response.headers == [
            HeaderField("Content-Type", "text/plain"),
            HeaderField("Content-Length", "3"),
        ]
        assert response.payload.blocks == [b"abc"]

    def test_echo_empty_has_no_length(self, config: ServerConfig):
        response = handle_echo(config, make_request(""))

        assert response.get_header("Content-Length") is None
        assert response.payload.length == 0

    def test_echo_gzip(self, config: ServerConfig):
        """Test gzip is applied when listed in Accept-Encoding."""
        request = make_request("hello", HeaderField("Accept-Encoding", "deflate, gzip"))

        response = handle_echo(config, request)

        body = b"".join(response.payload.blocks)
        assert gzip.decompress(body) == b"hello"
        assert response.get_header("Content-Encoding") == "gzip"
        assert response.get_header("Content-Length") == str(len(body))

    def test_echo_gzip_token_must_match(self, config: ServerConfig):
        """Test a coding that merely contains 'gzip' does not count."""
        request = make_request("hello", HeaderField("Accept-Encoding", "x-gzip-custom"))

        response = handle_echo(config, request)

        assert response.payload.blocks == [b"hello"]
        assert response.get_header("Content-Encoding") is None


class TestUserAgent:
    """Tests for handle_user_agent."""

    def test_user_agent(self, config: ServerConfig):
        request = make_request("", HeaderField("User-Agent", "curl/8.0"))

        response = handle_user_agent(config, request)

        assert response.status == HTTPStatus.OK
        assert response.payload.blocks == [b"curl/8.0"]
        assert response.get_header("Content-Length") == "8"

    def test_first_user_agent_wins(self, config: ServerConfig):
        request = make_request(
            "",
            HeaderField("User-Agent", "first"),
            HeaderField("User-Agent", "second"),
        )

        response = handle_user_agent(config, request)

        assert response.payload.blocks == [b"first"]

    def test_missing_user_agent(self, config: ServerConfig):
        response = handle_user_agent(config, make_request(""))

        assert response.status == HTTPStatus.BAD_REQUEST


class TestDownload:
    """Tests for handle_download_file."""

    def test_download(self, config: ServerConfig, tmp_path: Path):
        (tmp_path / "a.txt").write_bytes(b"file contents")

        response = handle_download_file(config, make_request("a.txt"))

        assert response.status == HTTPStatus.OK
        assert response.headers == [
            HeaderField("Content-Length", "13"),
            HeaderField("Content-Type", "application/octet-stream"),
            HeaderField("Content-Disposition", "attachment"),
        ]
        assert drain(response) == b"file contents"

    def test_empty_file_has_no_length(self, config: ServerConfig, tmp_path: Path):
        (tmp_path / "empty").write_bytes(b"")

        response = handle_download_file(config, make_request("empty"))

        assert response.get_header("Content-Length") is None
        assert drain(response) == b""

    def test_nested_path(self, config: ServerConfig, tmp_path: Path):
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "b.bin").write_bytes(b"\x00\x01")

        response = handle_download_file(config, make_request("sub/b.bin"))

        assert drain(response) == b"\x00\x01"

    def test_missing_file(self, config: ServerConfig):
        response = handle_download_file(config, make_request("nope.txt"))

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.payload is None

    def test_directory_is_server_error(self, config: ServerConfig, tmp_path: Path):
        (tmp_path / "dir").mkdir()

        response = handle_download_file(config, make_request("dir"))

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR

    def test_traversal_forbidden(self, config: ServerConfig):
        response = handle_download_file(config, make_request("../outside.txt"))

        assert response.status == HTTPStatus.FORBIDDEN

    @requires_non_root
    def test_permission_denied(self, config: ServerConfig, tmp_path: Path):
        secret = tmp_path / "secret"
        secret.write_bytes(b"x")
        secret.chmod(0)

        try:
            response = handle_download_file(config, make_request("secret"))
        finally:
            secret.chmod(0o644)

        assert response.status == HTTPStatus.FORBIDDEN


class TestUpload:
    """Tests for handle_upload_file."""

    def upload(self, config: ServerConfig, name: str, data: bytes, length=None):
        length = len(data) if length is None else length
        request = make_request(
            name, HeaderField("Content-Length", str(length)), body=data,
        )
        return handle_upload_file(config, request)

    @pytest.mark.parametrize("size", [0, 1, 1024, 1025, 4096 + 3])
    def test_upload(self, config: ServerConfig, tmp_path: Path, size: int):
        data = os.urandom(size)

        response = self.upload(config, "up.bin", data)

        assert response.status == HTTPStatus.CREATED
        assert (tmp_path / "up.bin").read_bytes() == data

    def test_small_buffer(self, config: ServerConfig, tmp_path: Path):
        """Test the configured buffer size is honored."""
        small = dataclasses.replace(config, copy_buffer_size=3)

        response = self.upload(small, "small.txt", b"abcdefghij")

        assert response.status == HTTPStatus.CREATED
        assert (tmp_path / "small.txt").read_bytes() == b"abcdefghij"

    def test_extra_body_bytes_ignored(self, config: ServerConfig, tmp_path: Path):
        """Test only Content-Length bytes are stored."""
        response = self.upload(config, "cut.txt", b"hello world", length=5)

        assert response.status == HTTPStatus.CREATED
        assert (tmp_path / "cut.txt").read_bytes() == b"hello"

    def test_overwrites_existing(self, config: ServerConfig, tmp_path: Path):
        (tmp_path / "same.txt").write_bytes(b"old contents")

        self.upload(config, "same.txt", b"new")

        assert (tmp_path / "same.txt").read_bytes() == b"new"

    def test_missing_content_length(self, config: ServerConfig, tmp_path: Path):
        request = make_request("x.txt", body=b"data")

        response = handle_upload_file(config, request)

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert not (tmp_path / "x.txt").exists()

    @pytest.mark.parametrize("value", ["lots", "²"])
    def test_invalid_content_length(self, config: ServerConfig, tmp_path: Path, value: str):
        request = make_request("x.txt", HeaderField("Content-Length", value), body=b"data")

        response = handle_upload_file(config, request)

        assert response.status == HTTPStatus.BAD_REQUEST
        assert not (tmp_path / "x.txt").exists()

    def test_missing_directory(self, config: ServerConfig):
        response = self.upload(config, "no/such/dir.txt", b"data")

        assert response.status == HTTPStatus.NOT_FOUND

    def test_traversal_forbidden(self, config: ServerConfig, tmp_path: Path):
        response = self.upload(config, "../escape.txt", b"data")

        assert response.status == HTTPStatus.FORBIDDEN
        assert not (tmp_path.parent / "escape.txt").exists()

    def test_premature_eof(self, config: ServerConfig):
        """Test a body shorter than declared raises."""
        with pytest.raises(IncompleteBodyError):
            self.upload(config, "short.txt", b"abc", length=10)

from __future__ import annotations

import io
from pathlib import Path

import pytest

from reqsmith.request import EntityEnclosingRequest, Request


def test_host_header_added_from_url() -> None:
    request = Request("GET", "http://example.com:8080/a")
    assert request.get_header("host") == "example.com:8080"


def test_host_header_not_overwritten() -> None:
    request = Request("GET", "http://example.com/a", {"Host": "other.example.com"})
    assert request.get_header("Host") == "other.example.com"


def test_relative_url_gets_no_host_header() -> None:
    request = Request("GET", "/a")
    assert not request.has_header("Host")
    assert request.resource == "/a"


def test_headers_are_case_insensitive() -> None:
    request = Request("GET", "http://example.com/", [("X-Token", "abc")])
    assert request.get_header("x-token") == "abc"
    assert request.get_header("missing") is None


def test_add_header_keeps_existing_values() -> None:
    request = Request("GET", "http://example.com/")
    request.add_header("Accept", "a").add_header("Accept", "b")
    assert request.get_header("accept") == "a, b"


def test_remove_missing_header_is_a_no_op() -> None:
    request = Request("GET", "http://example.com/")
    request.remove_header("X-Nope")
    assert request.get_header("Host") == "example.com"


def test_resource_includes_query() -> None:
    assert Request("GET", "http://example.com/a/b?x=1").resource == "/a/b?x=1"
    assert Request("GET", "http://example.com").resource == "/"


def test_str_serializes_start_line_and_headers() -> None:
    request = Request("get", "http://example.com/").set_protocol_version("1.0")
    assert str(request) == "GET / HTTP/1.0\r\nHost: example.com\r\n\r\n"


def test_open_response_body_path(tmp_path: Path) -> None:
    target = tmp_path / "out.bin"
    request = Request("GET", "http://example.com/").set_response_body(str(target))
    with request.open_response_body() as sink:
        sink.write(b"payload")
    assert target.read_bytes() == b"payload"


def test_open_response_body_defaults_to_memory() -> None:
    request = Request("GET", "http://example.com/")
    sink = request.open_response_body()
    assert isinstance(sink, io.BytesIO)
    assert request.open_response_body() is sink


def test_set_body_clears_form() -> None:
    request = EntityEnclosingRequest("POST", "http://example.com/")
    request.add_post_fields({"a": "1"})
    request.set_body("raw")
    assert request.get_post_fields() == []
    assert request.body == "raw"


def test_form_clears_raw_body() -> None:
    request = EntityEnclosingRequest("POST", "http://example.com/")
    request.set_body("raw")
    request.add_post_fields({"a": "1"})
    assert request.body is None
    assert not request.has_header("Content-Length")
    assert request.get_post_field("a") == "1"


def test_post_field_helpers() -> None:
    request = EntityEnclosingRequest("POST", "http://example.com/")
    request.set_post_field("a", 1).set_post_field("b", "2")
    request.remove_post_field("a")
    assert request.get_post_fields() == [("b", "2")]
    request.add_post_file("f", "@/tmp/x")
    request.remove_post_file("f")
    assert request.get_post_files() == {}


def test_removing_last_upload_falls_back_to_urlencoded() -> None:
    request = EntityEnclosingRequest("POST", "http://example.com/")
    request.add_post_file("f", "@/tmp/x").set_post_field("a", "1")
    assert request.get_header("Content-Type") == "multipart/form-data"

    request.remove_post_file("f")
    assert request.get_header("Content-Type") == "application/x-www-form-urlencoded"
    assert request.body_bytes() == b"a=1"

    request.remove_post_field("a")
    assert not request.has_header("Content-Type")


def test_removing_only_upload_drops_content_type() -> None:
    request = EntityEnclosingRequest("POST", "http://example.com/")
    request.add_post_file("f", "@/tmp/x")
    request.remove_post_file("f")
    assert not request.has_header("Content-Type")


def test_stream_body_length_and_bytes() -> None:
    stream = io.BytesIO(b"abc")
    request = EntityEnclosingRequest("PUT", "http://example.com/")
    request.set_body(stream, "application/octet-stream")
    assert request.get_header("Content-Length") == "3"
    assert request.body_bytes() == b"abc"
    assert stream.tell() == 0


def test_add_post_file_rejects_empty_path() -> None:
    request = EntityEnclosingRequest("POST", "http://example.com/")
    with pytest.raises(ValueError):
        request.add_post_file("f", "")
    with pytest.raises(ValueError):
        request.add_post_file("f", "@")


def test_to_httpx_raw_body() -> None:
    request = EntityEnclosingRequest("POST", "http://example.com/x")
    request.set_body("hello", "text/plain")
    converted = request.to_httpx()
    assert converted.method == "POST"
    assert converted.content == b"hello"
    assert converted.headers["Content-Length"] == "5"
    assert converted.headers["Content-Type"] == "text/plain"


def test_to_httpx_chunked_body() -> None:
    request = EntityEnclosingRequest("POST", "http://example.com/x", {"Transfer-Encoding": "chunked"})
    request.set_body("hello", chunked=True)
    converted = request.to_httpx()
    assert converted.headers["Transfer-Encoding"] == "chunked"
    assert "Content-Length" not in converted.headers


def test_to_httpx_multipart(tmp_path: Path) -> None:
    upload = tmp_path / "a.txt"
    upload.write_bytes(b"file-content")
    request = EntityEnclosingRequest("POST", "http://example.com/upload")
    request.add_post_file("doc", f"@{upload}")
    request.add_post_fields({"name": "me"})

    converted = request.to_httpx()
    converted.read()

    assert converted.headers["Content-Type"].startswith("multipart/form-data; boundary=")
    assert b'filename="a.txt"' in converted.content
    assert b"file-content" in converted.content
    assert b'name="name"' in converted.content


def test_to_httpx_missing_upload(tmp_path: Path) -> None:
    request = EntityEnclosingRequest("POST", "http://example.com/upload")
    request.add_post_file("doc", str(tmp_path / "missing.txt"))
    with pytest.raises(FileNotFoundError):
        request.to_httpx()


def test_to_dict_describes_form_request() -> None:
    request = EntityEnclosingRequest("POST", "http://example.com/")
    request.add_post_fields([("a", "1")])
    request.add_post_file("f", "/tmp/f")
    data = request.to_dict()
    assert data["kind"] == "entity_enclosing"
    assert data["fields"] == [["a", "1"]]
    assert data["files"] == {"f": "/tmp/f"}
    assert data["body"] is None
    assert ["Host", "example.com"] in data["headers"]

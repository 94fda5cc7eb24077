# reqsmith/request.py
import io
import os
import mimetypes
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import httpx

from reqsmith.body import RawPayload, strip_upload_marker
from reqsmith.url import parse_url

HeaderTypes = Union[httpx.Headers, Dict[str, str], List[Tuple[str, str]], None]

FORM_URLENCODED = "application/x-www-form-urlencoded"
MULTIPART_FORM_DATA = "multipart/form-data"


class Request:
    """
    An HTTP request that carries no entity body (GET, HEAD, TRACE, OPTIONS).

    Headers are kept in an ``httpx.Headers`` so lookups are case-insensitive
    while the original casing and order survive for serialization.
    """

    kind = "no_body"

    def __init__(self, method: str, url: str, headers: HeaderTypes = None):
        if not method or not method.strip():
            raise ValueError("HTTP method must be a non-empty string")
        if not url:
            raise ValueError("Request URL must be a non-empty string")

        self.method = method.strip().upper()
        self.url = url
        self.headers = httpx.Headers(headers)
        self.protocol = "HTTP"
        self.protocol_version = "1.1"
        self.response_body: Any = None

        # A client MUST include a Host header in HTTP/1.1 requests.
        if "Host" not in self.headers:
            host = self._host_from_url()
            if host:
                self.headers["Host"] = host

    def _host_from_url(self) -> str:
        parts = parse_url(self.url)
        if not parts.host:
            return ""
        if parts.port is not None:
            return f"{parts.host}:{parts.port}"
        return parts.host

    @property
    def resource(self) -> str:
        """The request-target: path plus query string."""
        parts = parse_url(self.url)
        resource = parts.path or "/"
        if parts.query:
            resource += f"?{parts.query}"
        return resource

    # --- Headers ---

    def get_header(self, name: str) -> Optional[str]:
        """Returns the header value (repeated headers comma-joined) or None."""
        return self.headers.get(name)

    def has_header(self, name: str) -> bool:
        return name in self.headers

    def set_header(self, name: str, value: Any) -> "Request":
        """Replaces every value of ``name`` with ``value``."""
        self.headers[name] = str(value)
        return self

    def add_header(self, name: str, value: Any) -> "Request":
        """Appends a value, keeping any existing ones."""
        self.headers = httpx.Headers(list(self.headers.raw) + [(name, str(value))])
        return self

    def remove_header(self, name: str) -> "Request":
        if name in self.headers:
            del self.headers[name]
        return self

    def _ensure_header(self, name: str, value: str):
        # Only touch the header when the value changes so the received casing survives.
        if self.headers.get(name) != value:
            self.headers[name] = value

    # --- Protocol / response sink ---

    def set_protocol_version(self, version: str) -> "Request":
        self.protocol_version = str(version)
        return self

    def set_response_body(self, sink: Any) -> "Request":
        """
        Sets where the response content should be written.

        ``sink`` is either a writable binary stream or a filesystem path; paths
        are only opened by ``open_response_body``.
        """
        self.response_body = sink
        return self

    def open_response_body(self):
        """Returns a writable binary stream for the response body sink."""
        if self.response_body is None:
            self.response_body = io.BytesIO()
        if isinstance(self.response_body, (str, os.PathLike)):
            return open(self.response_body, "wb")
        return self.response_body

    # --- Conversions ---

    def _header_lines(self) -> List[str]:
        encoding = self.headers.encoding
        return [
            f"{key.decode(encoding)}: {value.decode(encoding)}"
            for key, value in self.headers.raw
        ]

    def start_line(self) -> str:
        return f"{self.method} {self.resource} {self.protocol}/{self.protocol_version}"

    def raw_headers(self) -> str:
        """Start line and headers, terminated by the blank line."""
        return "\r\n".join([self.start_line()] + self._header_lines()) + "\r\n\r\n"

    def __str__(self) -> str:
        return self.raw_headers()

    def __repr__(self):
        return f"<{type(self).__name__} [{self.method} {self.url!r}]>"

    def to_dict(self) -> Dict[str, Any]:
        encoding = self.headers.encoding
        sink = self.response_body
        return {
            "kind": self.kind,
            "method": self.method,
            "url": self.url,
            "protocol": self.protocol,
            "protocol_version": self.protocol_version,
            "headers": [
                [key.decode(encoding), value.decode(encoding)]
                for key, value in self.headers.raw
            ],
            "response_body": os.fspath(sink) if isinstance(sink, (str, os.PathLike)) else None,
        }

    def to_httpx(self) -> httpx.Request:
        """Builds the equivalent ``httpx.Request``. Nothing is sent."""
        return httpx.Request(self.method, self.url, headers=self.headers)


class EntityEnclosingRequest(Request):
    """
    An HTTP request that can carry an entity body.

    The body is held in exactly one form at a time: a raw payload
    (``set_body``) or form fields with optional file uploads
    (``add_post_fields`` / ``add_post_file``). Switching forms clears the other.
    """

    kind = "entity_enclosing"

    # Methods that get "Expect: 100-Continue" when a raw body is attached
    EXPECT_CONTINUE_METHODS = ("PUT", "POST")

    def __init__(self, method: str, url: str, headers: HeaderTypes = None):
        super().__init__(method, url, headers)
        self.body: Optional[RawPayload] = None
        self.chunked = False
        self.post_fields = httpx.QueryParams()
        self.post_files: Dict[str, str] = {}

    # --- Raw entity body ---

    def set_body(self, payload: RawPayload, content_type: str = "", chunked: bool = False) -> "EntityEnclosingRequest":
        """
        Attaches a raw entity body.

        Args:
            payload: str, bytes or a binary stream.
            content_type: Content-Type to set; left alone when empty.
            chunked: Send with ``Transfer-Encoding: chunked`` instead of Content-Length.
        """
        self._clear_form()
        self.body = payload
        self.chunked = chunked

        if content_type:
            self._ensure_header("Content-Type", content_type)

        if chunked:
            self._ensure_header("Transfer-Encoding", "chunked")
            self.remove_header("Content-Length")
        else:
            self.remove_header("Transfer-Encoding")
            size = self.content_length()
            if size is None:
                self.remove_header("Content-Length")
            else:
                self._ensure_header("Content-Length", str(size))

        if self.method in self.EXPECT_CONTINUE_METHODS and not self.has_header("Expect"):
            self.set_header("Expect", "100-Continue")

        return self

    def content_length(self) -> Optional[int]:
        """Size of the raw body in bytes, or None when it cannot be determined."""
        body = self.body
        if body is None:
            return 0
        if isinstance(body, str):
            return len(body.encode("utf-8"))
        if isinstance(body, bytes):
            return len(body)
        if hasattr(body, "seekable") and body.seekable():
            position = body.tell()
            body.seek(0, io.SEEK_END)
            end = body.tell()
            body.seek(position)
            return end - position
        return None

    def body_bytes(self) -> bytes:
        """The body as it would go on the wire (form fields urlencoded)."""
        if self.body is None:
            if self.post_fields and not self.post_files:
                return str(self.post_fields).encode("ascii")
            return b""
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        if isinstance(self.body, bytes):
            return self.body
        seekable = hasattr(self.body, "seekable") and self.body.seekable()
        position = self.body.tell() if seekable else None
        data = self.body.read()
        if position is not None:
            self.body.seek(position)
        return data.encode("utf-8") if isinstance(data, str) else data

    def _clear_raw_body(self):
        if self.body is not None:
            self.body = None
            self.chunked = False
            self.remove_header("Content-Length")
            self.remove_header("Transfer-Encoding")

    def _clear_form(self):
        self.post_fields = httpx.QueryParams()
        self.post_files = {}

    # --- Form fields and files ---

    def add_post_fields(self, fields: Any) -> "EntityEnclosingRequest":
        """Adds fields from a mapping, a list of pairs or ``httpx.QueryParams``. List values repeat the key."""
        self._clear_raw_body()
        items = fields.multi_items() if isinstance(fields, httpx.QueryParams) else (
            fields.items() if hasattr(fields, "items") else fields
        )
        for key, value in items:
            values = value if isinstance(value, (list, tuple)) else [value]
            for item in values:
                self.post_fields = self.post_fields.add(str(key), "" if item is None else str(item))
        self._sync_form_headers()
        return self

    def set_post_field(self, key: str, value: Any) -> "EntityEnclosingRequest":
        self._clear_raw_body()
        self.post_fields = self.post_fields.set(key, str(value))
        self._sync_form_headers()
        return self

    def get_post_field(self, key: str) -> Optional[str]:
        return self.post_fields.get(key)

    def get_post_fields(self) -> List[Tuple[str, str]]:
        return self.post_fields.multi_items()

    def remove_post_field(self, key: str) -> "EntityEnclosingRequest":
        self.post_fields = self.post_fields.remove(key)
        self._sync_form_headers(removed=True)
        return self

    def add_post_file(self, field: str, filename: str) -> "EntityEnclosingRequest":
        """
        Registers a file upload. A leading ``@`` on ``filename`` is stripped.

        The file is not opened here; ``to_httpx`` reads it.

        Raises:
            ValueError: If the path is empty.
        """
        path = strip_upload_marker(filename)
        if not path:
            raise ValueError(f"Upload for field '{field}' needs a file path")
        self._clear_raw_body()
        self.post_files[field] = path
        self._sync_form_headers()
        return self

    def get_post_files(self) -> Dict[str, str]:
        return dict(self.post_files)

    def remove_post_file(self, field: str) -> "EntityEnclosingRequest":
        self.post_files.pop(field, None)
        self._sync_form_headers(removed=True)
        return self

    def _sync_form_headers(self, removed: bool = False):
        """Keeps Content-Type in line with the form. Only removals downgrade or drop it."""
        content_type = self.get_header("Content-Type") or ""
        if self.post_files:
            if not content_type.lower().startswith(MULTIPART_FORM_DATA):
                self.set_header("Content-Type", MULTIPART_FORM_DATA)
            return
        if removed:
            # Last upload or field gone
            form_type = content_type.lower().startswith((MULTIPART_FORM_DATA, FORM_URLENCODED))
            if form_type and self.post_fields:
                self._ensure_header("Content-Type", FORM_URLENCODED)
            elif form_type:
                self.remove_header("Content-Type")
        elif self.post_fields and not content_type:
            self.set_header("Content-Type", FORM_URLENCODED)

    # --- Conversions ---

    def __str__(self) -> str:
        body = self.body_bytes()
        return self.raw_headers() + body.decode("utf-8", errors="replace")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "body": self.body_bytes().decode("utf-8", errors="replace") if self.body is not None else None,
            "chunked": self.chunked,
            "fields": [list(item) for item in self.get_post_fields()],
            "files": self.get_post_files(),
        })
        return data

    def to_httpx(self) -> httpx.Request:
        """
        Builds the equivalent ``httpx.Request``. Nothing is sent.

        Raises:
            FileNotFoundError: If an upload path does not point to a file.
        """
        if self.post_files:
            files = {}
            for field, path in self.post_files.items():
                file_path = Path(path)
                if not file_path.is_file():
                    raise FileNotFoundError(f"Upload file not found: {file_path}")
                content_type = mimetypes.guess_type(file_path.name)[0] or "application/octet-stream"
                files[field] = (file_path.name, file_path.read_bytes(), content_type)

            data: Dict[str, List[str]] = {}
            for key, value in self.get_post_fields():
                data.setdefault(key, []).append(value)

            # httpx writes its own boundary and length
            headers = httpx.Headers(self.headers)
            for name in ("Content-Type", "Content-Length"):
                if name in headers:
                    del headers[name]
            return httpx.Request(self.method, self.url, headers=headers, data=data, files=files)

        if self.body is None and not self.post_fields:
            return httpx.Request(self.method, self.url, headers=self.headers)

        content = self.body_bytes()
        if self.chunked:
            return httpx.Request(self.method, self.url, headers=self.headers, content=iter([content]))
        return httpx.Request(self.method, self.url, headers=self.headers, content=content)

# reqsmith/parser.py
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple, Union

import httpx

import config
from reqsmith.colors import colored_print, format_log_prefix
from reqsmith.url import UrlParts, parse_url

# Head and body are separated by the first empty line
_HEAD_BODY_SEPARATOR = re.compile(r"\r?\n\r?\n")
_HEAD_BODY_SEPARATOR_BYTES = re.compile(rb"\r?\n\r?\n")
_TOKEN = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
_PROTOCOL = re.compile(r"^([A-Za-z]+)/(\d+(?:\.\d+)?)$")


@dataclass
class ParsedMessage:
    method: str
    request_url: UrlParts
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    body: Union[str, bytes] = ""
    protocol: str = "HTTP"
    version: str = "1.1"


def _split_host_port(value: str) -> Tuple[str, Optional[int]]:
    value = value.strip()
    if value.startswith("["):
        end = value.find("]")
        if end == -1:
            raise ValueError(f"Invalid Host header: {value}")
        host, rest = value[:end + 1], value[end + 1:]
        port = rest[1:] if rest.startswith(":") else ""
    else:
        host, _, port = value.partition(":")
    if port and not port.isdigit():
        raise ValueError(f"Invalid port in Host header: {value}")
    return host, int(port) if port else None


class MessageParser:
    """
    Parses raw HTTP request messages (the text you would see on the wire,
    or paste from a proxy history) into a ParsedMessage.

    Args:
        default_scheme: Scheme used when the message only gives a Host header.
        target: Optional base URL (e.g. "https://staging.example.com/api").
                When set, its scheme, host and port win over the Host header
                and its path is prepended to the request path.
        debug: Print a [DEBUG] line for every rejected message.
    """

    def __init__(self, default_scheme: str = config.DEFAULT_SCHEME, target: Optional[str] = None, debug: bool = False):
        self.default_scheme = default_scheme
        self.target = target
        self.debug = debug

    def parse(self, raw: Union[str, bytes]) -> ParsedMessage:
        """
        Parses a raw request message.

        For bytes input the head is decoded as ISO-8859-1 and the body is
        returned as bytes, exactly as received.

        Raises:
            ValueError: If the message is empty or malformed.
        """
        if not raw or not raw.strip():
            raise ValueError("Empty HTTP request message")

        # Servers ignore empty lines received before the request line
        if isinstance(raw, bytes):
            header_encoding = "iso-8859-1"
            try:
                head_bytes, body = _HEAD_BODY_SEPARATOR_BYTES.split(raw.lstrip(b"\r\n"), maxsplit=1)
            except ValueError:
                head_bytes, body = raw.lstrip(b"\r\n"), b""
            head = head_bytes.decode(header_encoding)
        else:
            header_encoding = "utf-8"
            try:
                head, body = _HEAD_BODY_SEPARATOR.split(raw.lstrip("\r\n"), maxsplit=1)
            except ValueError:
                head, body = raw.lstrip("\r\n"), ""

        lines = head.replace("\r\n", "\n").split("\n")

        request_line = lines[0].strip()
        parts = request_line.split()
        if len(parts) != 3:
            raise ValueError(f"Invalid HTTP request line: {request_line}")
        method, request_target, protocol_token = parts

        if not _TOKEN.match(method):
            raise ValueError(f"Invalid HTTP method: {method}")
        match = _PROTOCOL.match(protocol_token)
        if not match:
            raise ValueError(f"Invalid protocol in request line: {protocol_token}")
        protocol, version = match.group(1).upper(), match.group(2)

        header_list: List[Tuple[str, str]] = []
        for line in lines[1:]:
            if not line.strip():
                continue
            # Obsolete line folding: continuation of the previous header
            if line[0] in " \t":
                if not header_list:
                    raise ValueError(f"Header continuation without a header: {line!r}")
                name, value = header_list[-1]
                header_list[-1] = (name, f"{value} {line.strip()}")
                continue
            if ':' not in line:
                raise ValueError(f"Invalid header line: {line!r}")
            name, value = line.split(':', 1)
            if not _TOKEN.match(name):
                raise ValueError(f"Invalid header name: {name!r}")
            header_list.append((name, value.strip()))

        # Encoded up front so non-ASCII values keep their original bytes
        headers = httpx.Headers([(name.encode(header_encoding), value.encode(header_encoding))
                                 for name, value in header_list])

        return ParsedMessage(
            method=method,
            request_url=self._url_parts(request_target, headers),
            headers=headers,
            body=body,
            protocol=protocol,
            version=version,
        )

    def parse_request(self, raw: Union[str, bytes]) -> Optional[ParsedMessage]:
        """Parses a raw request message, returning None when it cannot be parsed."""
        try:
            return self.parse(raw)
        except ValueError as e:
            if self.debug:
                colored_print(format_log_prefix("DEBUG", f"Unparseable request message: {e}"), "debug")
            return None

    def _url_parts(self, request_target: str, headers: httpx.Headers) -> UrlParts:
        if "://" in request_target:
            # Absolute-form, as sent to proxies
            url_parts = parse_url(request_target)
        else:
            path, _, query = request_target.partition('?')
            url_parts = UrlParts(path=path, query=query)
            host_header = headers.get("Host")
            if host_header:
                url_parts.host, url_parts.port = _split_host_port(host_header)
            url_parts.scheme = "https" if url_parts.port == 443 else self.default_scheme

        if self.target:
            base = parse_url(self.target)
            url_parts.scheme = base.scheme or url_parts.scheme
            url_parts.host = base.host
            url_parts.port = base.port
            url_parts.path = base.path.rstrip('/') + url_parts.path

        return url_parts


def read_message_file(filename: str, requests_dir: Optional[str] = None) -> str:
    """
    Reads a raw request message from a .txt file, keeping its line endings.

    Raises:
        FileNotFoundError: If the request file is not found
    """
    file_path = Path(requests_dir) / filename if requests_dir else Path(filename)
    if not file_path.is_file():
        raise FileNotFoundError(f"Request file not found: {file_path}")

    with open(file_path, "r", encoding="utf-8", newline="") as f:
        return f.read()

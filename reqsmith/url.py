# reqsmith/url.py
from dataclasses import dataclass, asdict, fields
from typing import Dict, Any, Mapping, Optional, Union
from urllib.parse import urlsplit, quote

DEFAULT_PORTS = {"http": 80, "https": 443}

# Characters left untouched when percent-encoding in strict mode.
# '%' is kept so already-encoded sequences are not encoded twice.
_PATH_SAFE = "/%:@!$&'()*+,;=-._~"
_QUERY_SAFE = _PATH_SAFE + "?"


@dataclass
class UrlParts:
    """Structured URL components, as produced by the message parser."""
    scheme: str = ""
    host: str = ""
    port: Optional[int] = None
    path: str = ""
    query: str = ""
    fragment: Optional[str] = None
    user: Optional[str] = None
    password: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "UrlParts":
        """Builds parts from a dict, ignoring unknown keys. ``pass`` is accepted for ``password``."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        if "pass" in data and "password" not in values:
            values["password"] = data["pass"]
        if values.get("port") in ("", None):
            values["port"] = None
        else:
            values["port"] = int(values["port"])
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def parse_url(url: str) -> UrlParts:
    """Splits a URL string into UrlParts."""
    split = urlsplit(url)
    host = split.hostname or ""
    if ":" in host:
        # IPv6 literal; urlsplit drops the brackets
        host = f"[{host}]"
    return UrlParts(
        scheme=split.scheme,
        host=host,
        port=split.port,
        path=split.path,
        query=split.query,
        fragment=split.fragment if "#" in url else None,
        user=split.username,
        password=split.password,
    )


def build_url(parts: Union[UrlParts, Mapping[str, Any]], strict: bool = False) -> str:
    """
    Assembles a URL string from structured parts.

    In strict mode the scheme and host are lowercased, default ports are dropped,
    the path is made absolute and unsafe characters in the path and query are
    percent-encoded. Without strict mode the parts are concatenated as given.
    """
    if not isinstance(parts, UrlParts):
        parts = UrlParts.from_mapping(parts)

    scheme = parts.scheme.lower() if strict else parts.scheme
    host = parts.host.lower() if strict else parts.host
    path = parts.path or ""
    query = parts.query or ""

    url = ""
    # Without a host the URL stays relative
    if scheme and host:
        url += f"{scheme}://"

    if host:
        if parts.user:
            url += parts.user
            if parts.password:
                url += f":{parts.password}"
            url += "@"
        url += host
        if parts.port is not None:
            if not (strict and DEFAULT_PORTS.get(scheme) == parts.port):
                url += f":{parts.port}"

    if strict:
        path = quote(path, safe=_PATH_SAFE)
        query = quote(query, safe=_QUERY_SAFE)
        if not path.startswith("/"):
            path = "/" + path

    # A host followed by a relative path needs a separator.
    if host and path and not path.startswith("/"):
        url += "/"
    url += path

    if query:
        url += f"?{query}"
    if parts.fragment is not None:
        url += f"#{parts.fragment}"

    return url

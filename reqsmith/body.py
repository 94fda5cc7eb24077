# reqsmith/body.py
"""
Request body shapes.

A body handed to the factory is normalized once into one of three forms before
the request object is touched:

    EmptyBody  - nothing to send
    RawBody    - an entity body (str, bytes or a binary stream)
    FormBody   - form fields plus file uploads

File uploads are detected by the cURL-style ``@`` prefix on string values
(``{"avatar": "@/tmp/me.png"}``) or by wrapping the path in ``FileRef``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, IO, List, Mapping, Tuple, Union

UPLOAD_MARKER = "@"

RawPayload = Union[str, bytes, IO[bytes]]


@dataclass(frozen=True)
class FileRef:
    """Explicit file upload reference; no ``@`` sniffing needed."""
    path: str


@dataclass(frozen=True)
class EmptyBody:
    pass


@dataclass(frozen=True)
class RawBody:
    payload: RawPayload


@dataclass(frozen=True)
class FormBody:
    fields: List[Tuple[str, str]] = field(default_factory=list)
    files: Dict[str, str] = field(default_factory=dict)


Body = Union[EmptyBody, RawBody, FormBody]


def is_upload_reference(value: Any) -> bool:
    """True for FileRef values and strings starting with the ``@`` marker."""
    if isinstance(value, FileRef):
        return True
    return isinstance(value, str) and value.startswith(UPLOAD_MARKER)


def strip_upload_marker(value: Union[str, FileRef]) -> str:
    if isinstance(value, FileRef):
        return value.path
    return value[len(UPLOAD_MARKER):] if value.startswith(UPLOAD_MARKER) else value


def _iter_structured(body: Any):
    """Yields (key, value) pairs from a mapping or a list of pairs, expanding list values."""
    items = body.items() if isinstance(body, Mapping) else body
    for key, value in items:
        if isinstance(value, (list, tuple)):
            for item in value:
                yield str(key), item
        else:
            yield str(key), value


def is_structured(body: Any) -> bool:
    """Mappings and lists of pairs are form input; str, bytes and streams are raw."""
    if isinstance(body, Mapping):
        return True
    if isinstance(body, list):
        return all(isinstance(item, tuple) and len(item) == 2 for item in body)
    return False


def normalize_body(body: Any) -> Body:
    """
    Turns whatever the caller passed as a body into a Body variant.

    None and empty values become EmptyBody. Structured input is split into
    file uploads (``@``-prefixed strings or FileRef values, marker removed) and
    regular fields; repeated keys and list values are kept as separate fields.
    Anything else is a raw entity body.
    """
    if isinstance(body, (EmptyBody, RawBody, FormBody)):
        return body
    if body is None:
        return EmptyBody()
    if is_structured(body):
        if not body:
            return EmptyBody()
        fields: List[Tuple[str, str]] = []
        files: Dict[str, str] = {}
        for key, value in _iter_structured(body):
            if is_upload_reference(value):
                files[key] = strip_upload_marker(value)
            else:
                fields.append((key, "" if value is None else str(value)))
        return FormBody(fields=fields, files=files)
    if isinstance(body, (str, bytes, bytearray)):
        if not body:
            return EmptyBody()
        return RawBody(bytes(body) if isinstance(body, bytearray) else body)
    return RawBody(body)

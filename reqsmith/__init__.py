from reqsmith.body import EmptyBody, FileRef, FormBody, RawBody, normalize_body
from reqsmith.factory import (
    NO_BODY_METHODS,
    RequestFactory,
    RequestKind,
    get_default_factory,
    is_no_body_method,
)
from reqsmith.parser import MessageParser, ParsedMessage
from reqsmith.request import EntityEnclosingRequest, Request
from reqsmith.url import UrlParts, build_url, parse_url

__all__ = [
    "EmptyBody", "FileRef", "FormBody", "RawBody", "normalize_body",
    "NO_BODY_METHODS", "RequestFactory", "RequestKind", "get_default_factory", "is_no_body_method",
    "MessageParser", "ParsedMessage",
    "EntityEnclosingRequest", "Request",
    "UrlParts", "build_url", "parse_url",
]

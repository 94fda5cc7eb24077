# reqsmith/factory.py
"""
Builds Request / EntityEnclosingRequest objects from explicit parts or from
raw HTTP messages.
"""

import threading
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Union

import config
from reqsmith.body import EmptyBody, FormBody, RawBody, normalize_body
from reqsmith.colors import colored_print, format_log_prefix
from reqsmith.parser import MessageParser
from reqsmith.request import EntityEnclosingRequest, HeaderTypes, Request
from reqsmith.url import UrlParts, build_url

# Methods whose semantics define no request entity body
NO_BODY_METHODS = frozenset({"GET", "HEAD", "TRACE", "OPTIONS"})


def is_no_body_method(method: str) -> bool:
    return method.upper() in NO_BODY_METHODS


class RequestKind(Enum):
    NO_BODY = "no_body"
    ENTITY_ENCLOSING = "entity_enclosing"


RequestConstructor = Callable[[str, str, HeaderTypes], Request]

DEFAULT_VARIANTS: Dict[RequestKind, RequestConstructor] = {
    RequestKind.NO_BODY: Request,
    RequestKind.ENTITY_ENCLOSING: EntityEnclosingRequest,
}


class RequestFactory:
    """
    Creates request objects and decides which variant a method needs.

    Args:
        variants: Optional mapping of RequestKind to a constructor taking
                  (method, url, headers). Kinds left out use the defaults, so
                  a caller can swap in a Request subclass and keep all the
                  body handling here.
        parser: Message parser used by ``from_message``.
        verbose: Print an [INFO] line per built request.
        debug: Print [DEBUG] details about body normalization.
    """

    def __init__(self, variants: Optional[Mapping[RequestKind, RequestConstructor]] = None,
                 parser: Optional[MessageParser] = None, verbose: bool = False, debug: bool = False):
        self.variants: Dict[RequestKind, RequestConstructor] = dict(DEFAULT_VARIANTS)
        if variants:
            self.variants.update(variants)
        self.parser = parser or MessageParser(debug=debug)
        self.verbose = verbose
        self.debug = debug

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any],
                      variants: Optional[Mapping[RequestKind, RequestConstructor]] = None) -> "RequestFactory":
        """Builds a factory from a resolved settings dict (see reqsmith.settings.resolve_settings)."""
        debug = bool(settings.get("debug", config.DEBUG_MODE))
        parser = MessageParser(
            default_scheme=settings.get("scheme") or config.DEFAULT_SCHEME,
            target=settings.get("target"),
            debug=debug,
        )
        return cls(variants=variants, parser=parser,
                   verbose=bool(settings.get("verbose", config.VERBOSE_MODE)), debug=debug)

    def create(self, method: str, url: str, headers: HeaderTypes = None, body: Any = None) -> Request:
        """
        Creates a request from its parts.

        For GET, HEAD, TRACE and OPTIONS a supplied ``body`` is not sent: it
        becomes the response body sink. For every other method the body is
        attached as form fields/files (structured input) or as a raw entity.
        """
        method = method.upper()

        if is_no_body_method(method):
            request = self.variants[RequestKind.NO_BODY](method, url, headers)
            if isinstance(body, RawBody):
                body = body.payload
            if body and not isinstance(body, (EmptyBody, FormBody)):
                request.set_response_body(body)
            self._log(request)
            return request

        request = self.variants[RequestKind.ENTITY_ENCLOSING](method, url, headers)
        normalized = normalize_body(body)

        if isinstance(normalized, FormBody):
            for field, path in normalized.files.items():
                request.add_post_file(field, path)
            if normalized.fields:
                request.add_post_fields(normalized.fields)
            if self.debug:
                colored_print(format_log_prefix(
                    "DEBUG", f"Form body: {len(normalized.fields)} field(s), {len(normalized.files)} file(s)"
                ), "debug")
        elif isinstance(normalized, RawBody):
            content_type = request.get_header("Content-Type") or ""
            chunked = (request.get_header("Transfer-Encoding") or "") == "chunked"
            request.set_body(normalized.payload, content_type, chunked)
            if self.debug:
                colored_print(format_log_prefix(
                    "DEBUG", f"Raw body: content-type='{content_type}' chunked={chunked}"
                ), "debug")

        self._log(request)
        return request

    def from_parts(self, method: str, url_parts: Union[UrlParts, Mapping[str, Any]], headers: HeaderTypes = None,
                   body: Any = None, protocol: str = config.DEFAULT_PROTOCOL,
                   protocol_version: str = config.DEFAULT_PROTOCOL_VERSION) -> Request:
        """Creates a request from structured URL parts and stamps the protocol version."""
        url = build_url(url_parts, strict=True)
        return self.create(method, url, headers, body).set_protocol_version(protocol_version)

    def from_message(self, message: Union[str, bytes]) -> Optional[Request]:
        """
        Rebuilds a request from a raw HTTP message.

        Returns:
            The request, or None if the message cannot be parsed.
        """
        parsed = self.parser.parse_request(message)
        if parsed is None:
            return None

        request = self.from_parts(parsed.method, parsed.request_url, parsed.headers,
                                  parsed.body, parsed.protocol, parsed.version)

        # set_body adds "Expect: 100-Continue" to PUT and POST requests with a
        # raw body. A rebuilt message must match what was received, so drop it
        # unless the message carried one.
        if "Expect" not in parsed.headers:
            request.remove_header("Expect")

        return request

    def _log(self, request: Request):
        if self.verbose:
            colored_print(format_log_prefix(
                "INFO", f"Built {type(request).__name__}: {request.method} {request.url}"
            ), "info")


_default_factory: Optional[RequestFactory] = None
_default_factory_lock = threading.Lock()


def get_default_factory() -> RequestFactory:
    """Returns the shared default factory, creating it on first use."""
    global _default_factory
    if _default_factory is None:
        with _default_factory_lock:
            if _default_factory is None:
                _default_factory = RequestFactory()
    return _default_factory


def reset_default_factory():
    """Drops the shared default factory so the next call builds a fresh one."""
    global _default_factory
    with _default_factory_lock:
        _default_factory = None

import io
import json
import sys
from typing import Any, Dict, List, Optional

from reqsmith.colors import color_formatter, format_log_prefix
from reqsmith.factory import RequestFactory, is_no_body_method
from reqsmith.parser import read_message_file
from reqsmith.request import Request


class Tee(io.StringIO):
    """Writes to several streams while keeping a copy of everything written."""

    def __init__(self, *streams):
        super().__init__()
        self.streams = streams

    def write(self, s):
        for stream in self.streams:
            stream.write(s)
        return super().write(s)

    def flush(self):
        for stream in self.streams:
            stream.flush()
        super().flush()


def print_request(request: Request, as_json: bool = False):
    """Prints a request as wire text (method and header names colored) or as JSON."""
    if as_json:
        print(json.dumps(request.to_dict(), indent=2))
        return
    head, _, body = str(request).partition("\r\n\r\n")
    start_line, *header_lines = head.split("\r\n")
    method, _, rest = start_line.partition(" ")
    lines = [f"{color_formatter.method(method, not is_no_body_method(method))} {rest}"]
    for line in header_lines:
        name, _, value = line.partition(": ")
        lines.append(f"{color_formatter.header_name(name)}: {value}")
    print("\r\n".join(lines) + "\r\n\r\n" + body)


def parse_header_args(header_args: Optional[List[str]]) -> List[tuple]:
    """Turns ["Name: value", ...] into header pairs."""
    headers = []
    for header in header_args or []:
        if ':' not in header:
            raise ValueError(f"Header must look like 'Name: value', got: {header!r}")
        name, value = header.split(':', 1)
        headers.append((name.strip(), value.strip()))
    return headers


def parse_field_args(field_args: Optional[List[str]]) -> List[tuple]:
    """Turns ["key=value", "file=@/path", ...] into form pairs."""
    fields = []
    for item in field_args or []:
        if '=' not in item:
            raise ValueError(f"Form field must look like 'key=value', got: {item!r}")
        key, value = item.split('=', 1)
        fields.append((key, value))
    return fields


def run_parse(factory: RequestFactory, options: Dict[str, Any]) -> int:
    raw_message = read_message_file(options["file"])
    request = factory.from_message(raw_message)
    if request is None:
        print(format_log_prefix("ERROR", f"Could not parse an HTTP request from {options['file']}"))
        return 1
    print_request(request, options.get("json", False))
    return 0


def run_build(factory: RequestFactory, options: Dict[str, Any]) -> int:
    headers = parse_header_args(options.get("headers"))
    if options.get("form"):
        body = parse_field_args(options["form"])
    else:
        body = options.get("data")
    request = factory.create(options["method"], options["url"], headers, body)
    request.set_protocol_version(options["protocol_version"])
    print_request(request, options.get("json", False))
    return 0


def run_serve(options: Dict[str, Any]) -> int:
    import uvicorn

    uvicorn.run("backend.api:app", host=options["host"], port=options["port"])
    return 0


def run(command: str, settings: Dict[str, Any], options: Dict[str, Any], output_file: Optional[str] = None) -> int:
    """
    Executes one CLI command and returns the process exit code.

    Everything printed is also written to ``output_file`` when given.
    """
    output_buffer = io.StringIO() if output_file else None
    orig_stdout = sys.stdout
    if output_buffer:
        sys.stdout = Tee(orig_stdout, output_buffer)

    exit_code = 1
    try:
        factory = RequestFactory.from_settings(settings)
        if not options.get("protocol_version"):
            options["protocol_version"] = settings["protocol_version"]

        if command == "parse":
            exit_code = run_parse(factory, options)
        elif command == "build":
            exit_code = run_build(factory, options)
        elif command == "serve":
            exit_code = run_serve(options)
        else:
            print(format_log_prefix("ERROR", f"Unknown command: {command}"))

    except FileNotFoundError as e:
        print(format_log_prefix("FATAL ERROR", f"A required file was not found: {e}"))
    except ValueError as e:
        print(format_log_prefix("ERROR", str(e)))
        if settings.get("debug"):
            import traceback
            traceback.print_exc()
    finally:
        if output_buffer:
            sys.stdout = orig_stdout
            with open(output_file, "w", encoding="utf-8") as f:
                f.write(output_buffer.getvalue())

    return exit_code

# main.py
"""
Main entry point for reqsmith.
Builds HTTP request objects from raw request files or from explicit parts.

Example Usage:
  # Rebuild a request captured from a proxy and print it back
  > python main.py parse requests/login.txt

  # Same, but point it at another host and print JSON
  > python main.py parse requests/login.txt --target https://staging.example.com --json

  # Build a request from parts
  > python main.py build POST https://example.com/api -H "Content-Type: application/json" -d '{"a": 1}'

  # Build a multipart upload ('@' marks a file path)
  > python main.py build POST https://example.com/upload -F name=me -F avatar=@/tmp/me.png

  # Serve the HTTP API
  > python main.py serve --port 8000
"""

import argparse
import sys
from pathlib import Path

import config
from reqsmith.colors import format_log_prefix
from reqsmith.settings import load_settings, resolve_settings
from run import run

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Build HTTP request objects from raw messages or explicit parts.",
        formatter_class=argparse.RawTextHelpFormatter
    )

    # --- Global arguments that apply to all sub-commands ---
    parser.add_argument(
        "--settings",
        type=Path,
        help="YAML or JSON settings file (supports 'extends')."
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output."
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug output for [DEBUG] messages."
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        help="Also write everything printed to this file."
    )

    subparsers = parser.add_subparsers(dest="command", required=True, help="Available commands")

    # 'parse' command: rebuild a request from a raw message file
    parser_parse = subparsers.add_parser(
        "parse",
        help="Rebuild a request from a raw HTTP request file.",
        description="Parses the raw message and prints the reconstructed request."
    )
    parser_parse.add_argument(
        "file",
        type=str,
        help="Path to the raw HTTP request file."
    )
    parser_parse.add_argument(
        "--target",
        type=str,
        help="Base URL that replaces the scheme/host of the message (e.g. https://abc.com.vn)."
    )
    parser_parse.add_argument(
        "--json",
        action="store_true",
        help="Print the request as JSON instead of wire format."
    )

    # 'build' command: create a request from parts
    parser_build = subparsers.add_parser(
        "build",
        help="Create a request from method, URL, headers and body.",
        description="Creates a request the same way library callers do with RequestFactory.create()."
    )
    parser_build.add_argument("method", type=str, help="HTTP method (any casing).")
    parser_build.add_argument("url", type=str, help="Request URL.")
    parser_build.add_argument(
        "-H", "--header",
        dest="headers",
        action="append",
        help="Header as 'Name: value'. Repeatable."
    )
    body_group = parser_build.add_mutually_exclusive_group()
    body_group.add_argument(
        "-d", "--data",
        type=str,
        help="Raw request body."
    )
    body_group.add_argument(
        "-F", "--form",
        action="append",
        help="Form field as key=value; key=@path uploads a file. Repeatable."
    )
    parser_build.add_argument(
        "--http-version",
        dest="protocol_version",
        type=str,
        help=f"Protocol version (default: {config.DEFAULT_PROTOCOL_VERSION})."
    )
    parser_build.add_argument(
        "--json",
        action="store_true",
        help="Print the request as JSON instead of wire format."
    )

    # 'serve' command: run the HTTP API
    parser_serve = subparsers.add_parser(
        "serve",
        help="Serve the request factory over HTTP.",
        description="Runs the FastAPI application with uvicorn."
    )
    parser_serve.add_argument("--host", type=str, default=config.API_HOST, help=f"Bind address (default: {config.API_HOST}).")
    parser_serve.add_argument("--port", type=int, default=config.API_PORT, help=f"Bind port (default: {config.API_PORT}).")

    return parser

def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    file_settings = {}
    if args.settings:
        if not args.settings.is_file():
            print(format_log_prefix("ERROR", f"Settings file not found at '{args.settings}'"))
            return 1
        file_settings = load_settings(args.settings, debug=args.debug, verbose=args.verbose)

    settings = resolve_settings(
        file_settings,
        target=getattr(args, "target", None),
        verbose=args.verbose or None,
        debug=args.debug or None,
    )

    options = {key: value for key, value in vars(args).items()
               if key not in ("settings", "verbose", "debug", "output", "command", "target")}

    if settings["verbose"]:
        print("--- reqsmith ---")
        print(f"Command:      {args.command}")
        print(f"Target:       {settings['target'] or '(from message)'}")
        print(f"HTTP version: {settings['protocol_version']}")
        print(f"Output File:  {args.output}")
        print("----------------\n")

    return run(args.command, settings, options, args.output)

if __name__ == "__main__":
    sys.exit(main())

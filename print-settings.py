#!/usr/bin/env python

import argparse
import configparser
import json
import sys
from pathlib import Path

from aiohttp import web

from print_settings.config import load_config
from print_settings.engine import slice_model
from print_settings.overrides import build_overrides
from print_settings.report import format_report, format_settings_summary
from print_settings.user_settings import parse_key_values, parse_user_settings
from print_settings.web_api import create_web_app


def _parse_settings(args: list[str]):
    settings, errors = parse_user_settings(parse_key_values(args))
    for key, msg in errors.items():
        print(f"[Settings] Ignoring {key}: {msg}", file=sys.stderr)
    return settings


def _load(config_path: str):
    config_file = configparser.ConfigParser()
    if not config_file.read(config_path):
        sys.exit(f"Config file not found: {config_path}")
    return load_config(config_file)


def overrides_command(args) -> int:
    settings = _parse_settings(args.settings)
    overrides = build_overrides(settings)
    print(json.dumps([o.to_dict() for o in overrides], indent=2))
    return 0


def slice_command(args) -> int:
    config = _load(args.config)
    config.archive_dir.mkdir(parents=True, exist_ok=True)
    settings = _parse_settings(args.settings)
    print(format_settings_summary(settings))
    result = slice_model(config, Path(args.model), settings)
    if not result.success:
        print(result.message, file=sys.stderr)
        return 1
    print(f"Done! Archived to:\n{result.job_folder}\n")
    print(format_report(result.report), end="")
    return 0


def serve_command(args) -> int:
    config = _load(args.config)
    if config.api_port <= 0:
        sys.exit("[API] port is not configured")
    print(f"HTTP API starting on port {config.api_port}")
    web.run_app(create_web_app(config), host=config.api_host, port=config.api_port)
    return 0


def main():
    parser = argparse.ArgumentParser(description="Print settings compiler for CuraEngine")
    parser.add_argument("-c", "--config", type=str, default="config.ini", help="Path to config file")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("overrides", help="Print the compiled overrides")
    p.add_argument("settings", nargs="*", help="key=value user settings")
    p.set_defaults(func=overrides_command)

    p = sub.add_parser("slice", help="Slice a model and print the report")
    p.add_argument("model", help="Path to an STL file")
    p.add_argument("settings", nargs="*", help="key=value user settings")
    p.set_defaults(func=slice_command)

    p = sub.add_parser("serve", help="Run the HTTP API")
    p.set_defaults(func=serve_command)

    args = parser.parse_args()
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()

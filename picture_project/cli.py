from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from picture_project.foundation.logging_utils import setup_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="picture_project", add_help=True)
    parser.add_argument("--log-file", default=None, help="Also write debug logs to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    picture = sub.add_parser("picture", help="Print the picture descriptor for an image and style")
    picture.add_argument("image")
    picture.add_argument("--style", required=True)
    picture.add_argument("--config", default=None)
    picture.add_argument("--url-base", default="")
    picture.add_argument("--format", dest="target_format", default=None, help="Convert every candidate, e.g. webp")
    picture.add_argument("--workers", type=int, default=None)

    retina = sub.add_parser("retina", help="Print the retina variant of a derived image")
    retina.add_argument("image")
    retina.add_argument("--chain", required=True, help="Variant identifier of the derived image")
    retina.add_argument("--factor", default="2x")
    retina.add_argument("--url-base", default="")

    styles = sub.add_parser("list-styles", help="List configured picture styles")
    styles.add_argument("--config", default=None)

    sub.add_parser("list-manipulations", help="List available manipulation methods")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(list(argv) if argv is not None else None)

    setup_logger(log_path=args.log_file, level=logging.DEBUG if args.verbose else logging.WARNING)

    from .app import render

    try:
        if args.command == "picture":
            payload = render.render_picture(
                args.image,
                args.style,
                config_path=args.config,
                url_base=args.url_base,
                target_format=args.target_format,
                max_workers=args.workers,
            )
            print(render.dump_json(payload))
            return 0

        if args.command == "retina":
            payload = render.render_retina(
                args.image, args.chain, factor=args.factor, url_base=args.url_base
            )
            if payload is None:
                print("No retina variant available")
                return 0
            print(render.dump_json(payload))
            return 0

        if args.command == "list-styles":
            render.list_styles(config_path=args.config)
            return 0

        if args.command == "list-manipulations":
            render.list_manipulations()
            return 0
    except (ValueError, FileNotFoundError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    raise AssertionError(f"Unhandled command: {args.command}")


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main(sys.argv[1:]))

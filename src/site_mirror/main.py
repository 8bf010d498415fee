"""Main entry point for the site mirror."""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from .agent.mirror_agent import MirrorAgent
from .config.loader import Config, load_config
from .errors import ExtractionFailed, InvalidTargetError

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Mirror a published site into a self-contained zip archive"
    )
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Path to config file (YAML or JSON); defaults apply when omitted",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    mirror = sub.add_parser("mirror", help="Mirror one site to a zip file")
    mirror.add_argument("url", help="Site URL to mirror")
    mirror.add_argument(
        "-o",
        "--output",
        default=None,
        help="Archive path (default: storage.archive_name in the current directory)",
    )

    serve = sub.add_parser("serve", help="Run the HTTP extraction service")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=int(os.environ.get("PORT", "3000")))
    return parser


def _load(config_path: str | None) -> Config:
    if config_path is None:
        return Config()
    return load_config(config_path)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        config = _load(args.config)
    except FileNotFoundError as e:
        print(str(e), file=sys.stderr)
        return EXIT_FAILED

    if args.command == "serve":
        import uvicorn

        from .server import create_app

        logging.getLogger(__name__).info(
            "Temp directory: %s", Path(config.storage.temp_dir).resolve()
        )
        uvicorn.run(create_app(config), host=args.host, port=args.port)
        return EXIT_OK

    output = Path(args.output or config.storage.archive_name)
    agent = MirrorAgent(config)
    try:
        job = asyncio.run(agent.extract_to_file(args.url, output))
    except InvalidTargetError as e:
        print(f"Invalid URL: {e}", file=sys.stderr)
        return EXIT_INVALID
    except ExtractionFailed as e:
        print(f"Extraction failed: {e}", file=sys.stderr)
        return EXIT_FAILED

    print(
        f"Mirrored {job.pages_processed} pages ({job.total_bytes} bytes) "
        f"into {output} ({job.archive_bytes} bytes)"
    )
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())

"""``mvstudio-server``: run the API under uvicorn.

Flags are exported as ``MVSTUDIO_*`` environment variables before the app is
imported, so they override ``.env`` and the process environment.
"""

import argparse
import os


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mvstudio-server",
        description="Music video studio API: generation jobs and social publishing",
    )
    parser.add_argument("--host", default="0.0.0.0", help="Bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8080, help="Bind port (default: 8080)")
    parser.add_argument("--local", action="store_true", help="SQLite database and console logs")
    parser.add_argument("--database-url", help="Override MVSTUDIO_DATABASE_URL")
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        help="Override MVSTUDIO_LOG_LEVEL",
    )
    parser.add_argument("--reload", action="store_true", help="Restart on code changes")
    return parser


def _export_overrides(args: argparse.Namespace) -> None:
    if args.local:
        os.environ["MVSTUDIO_LOCAL_MODE"] = "1"
    if args.database_url:
        os.environ["MVSTUDIO_DATABASE_URL"] = args.database_url
    if args.log_level:
        os.environ["MVSTUDIO_LOG_LEVEL"] = args.log_level


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)
    _export_overrides(args)

    import uvicorn

    uvicorn.run(
        "mvstudio.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_config=None,
    )


if __name__ == "__main__":
    main()

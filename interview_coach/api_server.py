#!/usr/bin/env python3
"""Run the Interview Coach API with uvicorn.

Settings come from the command line, then the environment, then a ``.env``
file if one is present.
"""

import argparse
import os

import uvicorn
from dotenv import load_dotenv

APP_PATH = "interview_coach.api.main:app"
LOG_LEVELS = ["critical", "error", "warning", "info", "debug", "trace"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Interview Coach API server")
    parser.add_argument("--env-file", default=".env", help="dotenv file to load before startup (default: .env)")
    parser.add_argument("--host", default=None, help="Bind address (env INTERVIEW_COACH_HOST, default 127.0.0.1)")
    parser.add_argument("--port", type=int, default=None, help="Bind port (env INTERVIEW_COACH_PORT, default 8080)")
    parser.add_argument("--workers", type=int, default=1, help="Worker processes; ignored with --reload")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    parser.add_argument("--log-level", default="info", choices=LOG_LEVELS, help="uvicorn log level")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    # Existing environment variables take precedence over the file
    load_dotenv(args.env_file, override=False)

    host = args.host or os.getenv("INTERVIEW_COACH_HOST", "127.0.0.1")
    port = args.port or int(os.getenv("INTERVIEW_COACH_PORT", "8080"))

    print(f"Interview Coach API listening on http://{host}:{port} (docs at /docs)")
    uvicorn.run(
        APP_PATH,
        host=host,
        port=port,
        reload=args.reload,
        workers=None if args.reload else args.workers,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()

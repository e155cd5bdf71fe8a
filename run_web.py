#!/usr/bin/env python3
"""
Start the Rally API server.

    python run_web.py --data-dir /var/lib/rally --port 9000

The data directory, K-factor and log level given on the command line are
exported as RALLY_* variables, so they also reach reloaded workers. Anything
left out falls back to the environment, then to the built-in defaults.
"""
import argparse
import os

import uvicorn

from src.utils.log import setup_logger

logger = setup_logger("rally.server")

# Command-line option -> environment variable read by EngineConfig.from_env
ENV_OPTIONS = {
    "data_dir": "RALLY_DATA_DIR",
    "k_factor": "RALLY_K_FACTOR",
    "log_level": "RALLY_LOG_LEVEL",
}


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Rally matchmaking, bracket and league API"
    )
    parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    parser.add_argument("--port", type=int, default=8000, help="Bind port")
    parser.add_argument("--data-dir", help="Directory holding rally.db")
    parser.add_argument("--k-factor", type=int, help="Elo K-factor")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for engine and storage loggers"
    )
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    for option, variable in ENV_OPTIONS.items():
        value = getattr(args, option)
        if value is not None:
            os.environ[variable] = str(value)

    logger.info(
        "Serving Rally on http://%s:%d (data in %s, docs at /docs)",
        args.host, args.port, os.getenv("RALLY_DATA_DIR", "data")
    )
    uvicorn.run(
        "src.web.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=(args.log_level or "info").lower()
    )


if __name__ == "__main__":
    main()

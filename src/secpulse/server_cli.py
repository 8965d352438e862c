"""CLI entry point for the SecPulse sync server."""

import argparse
import os


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="secpulse-server",
        description="SecPulse sync server: security-tool ingest for the executive dashboard",
    )
    parser.add_argument("--host", default="0.0.0.0", help="Bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8080, help="Bind port (default: 8080)")
    parser.add_argument(
        "--local",
        action="store_true",
        help="Local dev mode: SQLite database, in-process job queue, no Redis required",
    )
    parser.add_argument(
        "--no-scheduler",
        action="store_true",
        help="Serve the API and consume jobs without running the sync timetables",
    )
    args = parser.parse_args(argv)

    if args.local:
        os.environ["SECPULSE_LOCAL_MODE"] = "1"
    if args.no_scheduler:
        os.environ["SECPULSE_SCHEDULER_ENABLED"] = "0"

    import uvicorn

    uvicorn.run("secpulse.main:app", host=args.host, port=args.port)


if __name__ == "__main__":
    main()

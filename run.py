"""Simple runner for the FastAPI app.

Usage:
  python run.py            # serve the API
  python run.py sync       # refresh the timetable window once and exit

Optional environment variables:
  HOST (default localhost)
  PORT (default 8000)
  UVICORN_RELOAD (true/false)

This script ensures the configured `DATA_DIR` exists before starting.
"""
import argparse
import asyncio
import os
import sys


def _sync_once() -> int:
    from nexttrain.config.settings import settings
    from nexttrain.core.logging_config import setup_logging
    from nexttrain.dependencies import build_services

    setup_logging(settings)
    services = build_services(settings)
    if services.sync is None:
        print("PTX_APP_ID / PTX_APP_KEY are not set; cannot sync", file=sys.stderr)
        return 1
    outcomes = asyncio.run(services.sync.sync_window())
    for o in outcomes:
        status = "ok" if o.ok else f"failed ({o.error_type}: {o.error})"
        print(f"{o.date}: {status} trains={o.trains} stops={o.stops}")
    return 0 if all(o.ok for o in outcomes) else 2


def main():
    parser = argparse.ArgumentParser(description="NextTrain service runner")
    parser.add_argument("command", nargs="?", default="serve", choices=["serve", "sync"])
    args = parser.parse_args()

    from nexttrain.config.settings import settings

    if settings.DATA_DIR:
        os.makedirs(settings.DATA_DIR, exist_ok=True)

    if args.command == "sync":
        sys.exit(_sync_once())

    host = os.getenv("HOST", "localhost")
    port = int(os.getenv("PORT", "8000"))
    reload_env = os.getenv("UVICORN_RELOAD", "false").lower()
    reload_flag = reload_env in ("1", "true", "yes", "on")

    import uvicorn

    uvicorn.run("nexttrain.main:app", host=host, port=port, reload=reload_flag)


if __name__ == "__main__":
    main()

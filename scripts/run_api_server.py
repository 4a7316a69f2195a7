#!/usr/bin/env python3
"""Run the clinical orchestrator API with uvicorn.

Usage:
    python scripts/run_api_server.py --port 8080 --reload
"""

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

REPO_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(REPO_ROOT))

# .env must be loaded before the config reads ORCHESTRATOR_* overrides
load_dotenv(REPO_ROOT / ".env")

from clinical_orchestrator.api.config import load_config  # noqa: E402


def parse_args(argv=None) -> argparse.Namespace:
    server = load_config().server
    parser = argparse.ArgumentParser(description="Run the clinical orchestrator API server")
    parser.add_argument("--host", default=server.host, help=f"Bind address (default: {server.host})")
    parser.add_argument("--port", type=int, default=server.port, help=f"Port (default: {server.port})")
    parser.add_argument("--log-level", default=server.log_level.lower(), help="uvicorn log level")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    return parser.parse_args(argv)


def main() -> None:
    import uvicorn

    args = parse_args()
    print(f"Clinical orchestrator API on http://{args.host}:{args.port} (docs at /docs)")
    uvicorn.run(
        "clinical_orchestrator.api.server:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()

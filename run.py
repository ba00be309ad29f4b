"""
Run the complaint sync service with uvicorn.

Usage:
    python run.py
    python run.py --reload    # Development mode with auto-reload
    python run.py --port 8080 # Custom port

Always a single process: the snapshot and the live channel live in
process memory, so extra workers would each hold their own copy.
"""
import argparse
import uvicorn

from complaint_sync.config.settings import settings


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the complaint sync service")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    parser.add_argument("--reload", action="store_true", help="Auto-reload on code changes")
    return parser.parse_args()


def main():
    args = parse_args()

    print("Starting complaint sync service...")
    print(f"  Listening:    http://{args.host}:{args.port}")
    print(f"  REST API:     {settings.api_base_url}")
    print(f"  Live channel: {settings.live_channel_endpoint.split('?')[0]}")
    print()

    uvicorn.run(
        "complaint_sync.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    main()

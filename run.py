"""
Run the helpdesk API with uvicorn.

Usage:
    python run.py
    python run.py --reload    # Development mode with auto-reload
    python run.py --port 8080 # Custom port
"""
import argparse
import uvicorn

from helpdesk.config.settings import settings


def main():
    parser = argparse.ArgumentParser(description="Run the helpdesk API server")
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to (default: 8000)"
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development"
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Worker processes; each runs its own audit writer (ignored with --reload)"
    )

    args = parser.parse_args()

    print("Starting helpdesk API server...")
    print(f"  Listening:   http://{args.host}:{args.port}")
    print(f"  Database:    {settings.mongo_db}")
    print(f"  Attachments: {settings.attachments_base_path}")
    print(f"  Audit:       {'queued' if settings.audit_async else 'inline'}")
    if not args.reload and args.workers > 1:
        print(f"  Workers:     {args.workers}")
    print()

    uvicorn.run(
        "helpdesk.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=1 if args.reload else args.workers
    )


if __name__ == "__main__":
    main()

"""
Run the typing attempt server.

Usage:
    python run_server.py [--host HOST] [--port PORT]

Example:
    python run_server.py --port 8000
"""

import argparse


def main():
    parser = argparse.ArgumentParser(description="Typrr Attempt Server")
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")
    args = parser.parse_args()

    print(f"""
╔══════════════════════════════════════════════════════════════╗
║        Typrr Attempt Server                                  ║
╠══════════════════════════════════════════════════════════════╣
║  Attempts:  http://{args.host}:{args.port}/api/attempt
║  WebSocket: ws://{args.host}:{args.port}/ws/session
║  Health:    http://{args.host}:{args.port}/health
║  Docs:      http://{args.host}:{args.port}/docs
╚══════════════════════════════════════════════════════════════╝
    """)

    import uvicorn
    uvicorn.run(
        "typrr.server:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()

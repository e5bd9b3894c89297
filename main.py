"""
Lead Quality Engine - Main Entry Point
======================================
Run this file to start the FastAPI server.

Usage:
    python main.py                    # Start server on port 8000
    python main.py --port 8080        # Start server on custom port
    python main.py --reload           # Start with auto-reload (dev mode)

Environment:
    LEAD_ENGINE_STORE_PATH            # Directory for persisted JSON data
    LEAD_ENGINE_LOG_LEVEL             # DEBUG, INFO, WARNING, ...

API Documentation:
    http://localhost:8000/docs        # Swagger UI
    http://localhost:8000/redoc       # ReDoc
"""

import argparse
import logging

import uvicorn
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from lead_engine.config.settings import LOG_FORMAT, LOG_LEVEL, SERVICE_CONFIG


def main():
    parser = argparse.ArgumentParser(description="Lead Quality Engine API Server")
    parser.add_argument(
        "--host",
        type=str,
        default=SERVICE_CONFIG["host"],
        help=f"Host to bind the server to (default: {SERVICE_CONFIG['host']})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=SERVICE_CONFIG["port"],
        help=f"Port to run the server on (default: {SERVICE_CONFIG['port']})",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of worker processes (default: 1)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=LOG_LEVEL,
        help=f"Logging level (default: {LOG_LEVEL})",
    )

    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper(), format=LOG_FORMAT)
    logger = logging.getLogger("lead_engine")
    logger.info(
        "Starting %s %s on http://%s:%d (docs at /docs)",
        SERVICE_CONFIG["name"],
        SERVICE_CONFIG["version"],
        args.host,
        args.port,
    )

    uvicorn.run(
        "lead_engine.api.endpoints:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=args.workers if not args.reload else 1,
        log_level=args.log_level.lower(),
    )


if __name__ == "__main__":
    main()

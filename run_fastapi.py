"""
Main entry point for the FastAPI application.
Run this file to start the FastAPI server.

Usage:
    python run_fastapi.py

Or with uvicorn directly:
    uvicorn dm_threads.asgi:app --host 0.0.0.0 --port 8080 --reload
"""

import logging
import os

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

import uvicorn

logger = logging.getLogger("dm_threads.run")

if __name__ == "__main__":
    env = os.getenv("APP_ENV", "development")
    debug = env == "development"
    port = int(os.getenv("PORT", 8080))
    host = os.getenv("HOST", "0.0.0.0")

    logging.basicConfig(level=logging.INFO)
    logger.info(f"Starting FastAPI application in {env} mode on http://{host}:{port}")

    uvicorn.run(
        "dm_threads.asgi:app",
        host=host,
        port=port,
        reload=debug,
        log_level="info" if debug else "warning",
    )

"""
Code Royale - Main entry point.
This file runs the FastAPI application from the royale package.
"""
import uvicorn

from royale.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "royale.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )

"""
QuickNotes Backend: Process Entry Point
=======================================

    python -m quicknotes

Runs uvicorn with ``settings.workers`` worker processes. Each worker imports
quicknotes.main:app and opens its own connections to the shared database
file; uvicorn handles SIGINT/SIGTERM and the lifespan disposes the engine.
"""

import uvicorn

from quicknotes.config import settings


def main() -> None:
    uvicorn.run(
        "quicknotes.main:app",
        host=settings.backend_host,
        port=settings.backend_port,
        workers=settings.workers,
        log_level=settings.log_level.lower(),
        # Request lines come from RequestLoggingMiddleware
        access_log=False,
    )


if __name__ == "__main__":
    main()

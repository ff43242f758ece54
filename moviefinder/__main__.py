"""
MovieFinder — Application entry point.

Run with:  python -m moviefinder
           uvicorn moviefinder.main:app --reload
"""

import uvicorn

from moviefinder.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "moviefinder.main:app",
        host=settings.app_host,
        port=settings.app_port,
        log_level=settings.log_level,
        reload=True,
    )

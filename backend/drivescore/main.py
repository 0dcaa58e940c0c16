import sys

from fastapi import FastAPI, Request
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from drivescore import __version__
from drivescore.config import get_settings
from drivescore.routers import extraction, health
from drivescore.routers.extraction import error_response


def configure_logging(level: str) -> None:
    """Route loguru output to a single stderr sink at ``level``."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


configure_logging(get_settings().log_level)

app = FastAPI(
    title="Drive Score Form Extraction",
    description="Handwritten voter registration form transcription via Claude vision",
    version=__version__,
)

# Register routers. The Netlify path keeps the original function URL working
# when the app is served through the serverless adapter.
app.include_router(health.router)
app.include_router(extraction.router, prefix="/api")
app.include_router(extraction.router, prefix="/.netlify/functions")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render routing errors as {"error": ...} with CORS headers.

    Any method other than POST or OPTIONS on a known path lands here as 405.
    """
    if exc.status_code == 405:
        return error_response(405, "Method not allowed")
    response = error_response(exc.status_code, str(exc.detail))
    for name, value in (exc.headers or {}).items():
        response.headers.setdefault(name, value)
    return response


logger.info("Drive Score extraction API started")

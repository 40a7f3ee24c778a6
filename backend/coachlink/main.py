import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from .core.config import get_settings
from .core.errors import unhandled_exception_handler, validation_exception_handler
from .routers import activity, auth, coaches, dashboard, rpc

settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="CoachLink",
    version="0.1.0",
)

app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.include_router(auth.router)
app.include_router(coaches.router)
app.include_router(rpc.router)
app.include_router(activity.router)
app.include_router(dashboard.router)


@app.get("/health", tags=["health"])
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}

# tribes_api/main.py
from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tribes_api.app.api import api_router
from tribes_api.config import CORS_ORIGINS, PORT, REQUEST_TIMEOUT_SECONDS, configure_logging
from tribes_api.middleware import (
    RequestContextMiddleware,
    TimeoutMiddleware,
    register_exception_handlers,
)
from tribes_api.tribal_core import register_events

configure_logging()

# ---- App
app = FastAPI(title="Tribes API", version="0.1.0")
app.include_router(api_router)

# Middleware: last added runs first
app.add_middleware(TimeoutMiddleware, timeout=REQUEST_TIMEOUT_SECONDS)
app.add_middleware(RequestContextMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=[
        "Accept",
        "Authorization",
        "Content-Type",
        "X-CSRF-Token",
        "X-User",
        "x-jwt",
        "Referer",
        "User-Agent",
    ],
    max_age=300,
)

register_exception_handlers(app)

# Table creation at startup
register_events(app)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("tribes_api.main:app", host="0.0.0.0", port=PORT)

import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from timesheet_backend.core.logging_config import setup_logging
from timesheet_backend.core.validation import EmptyResultError, TransformError
from timesheet_backend.routes import worklogs


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title="Timesheet Transformer API", version="0.1.0")

    origins_env = os.getenv("API_CORS_ORIGINS", "")
    origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]
    if not origins:
        origins = ["http://localhost:5173", "http://127.0.0.1:5173"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )

    app.include_router(worklogs.router, prefix="/api")

    @app.exception_handler(TransformError)
    async def transform_error_handler(request: Request, exc: TransformError) -> JSONResponse:
        status_code = 422 if isinstance(exc, EmptyResultError) else 400
        return JSONResponse(
            status_code=status_code,
            content={"detail": str(exc), "error": type(exc).__name__},
        )

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Timesheet Transformer API",
                "docs": "/docs",
                "export": "/api/worklogs/export/xlsx",
            }
        )

    return app


app = create_app()

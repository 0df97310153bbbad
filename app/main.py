from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from db.repositories.errors import RepositoryUnavailableError


def _validate_env() -> None:
    """
    Validate all required environment variables at startup.

    Runs before any service or database connection is initialised.
    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.
    """

    from db.config import load_env_files

    load_env_files()

    errors: list[str] = []

    # --- Database URL ---------------------------------------------------
    database_url = os.getenv("DATABASE_URL", "").strip()
    cloud_database_url = os.getenv("CLOUD_DATABASE_URL", "").strip()
    local_database_url = os.getenv("LOCAL_DATABASE_URL", "").strip()
    if not database_url and not cloud_database_url and not local_database_url:
        errors.append(
            "No database URL configured. Set DATABASE_URL, CLOUD_DATABASE_URL or LOCAL_DATABASE_URL."
        )

    # --- Numeric settings -----------------------------------------------
    for name in (
        "IMPORT_WORKER_COUNT",
        "IMPORT_PROGRESS_FLUSH_INTERVAL",
        "IMPORT_MAX_ROWS",
        "HISTORY_RETENTION_DAYS",
        "HISTORY_CLEANUP_HOUR_UTC",
        "API_PORT",
    ):
        raw_value = os.getenv(name)
        if raw_value is not None and not raw_value.strip().isdigit():
            errors.append(f"{name}='{raw_value}' must be a non-negative integer.")

    if errors:
        raise RuntimeError(
            "Startup validation failed, missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    from app.config import get_log_level

    logging.basicConfig(
        level=getattr(logging, get_log_level(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _verify_database() -> None:
    """
    Fail startup unless the database answers and carries every person-roll
    table and column. Migrations are never applied from here.
    """
    from sqlalchemy import inspect as sa_inspect
    from sqlalchemy import text

    import db.models  # noqa: F401  registers the person-roll tables on Base.metadata
    from db.base import Base
    from db.session import get_engine

    try:
        with get_engine().connect() as connection:
            connection.execute(text("SELECT 1"))
            inspector = sa_inspect(connection)
            existing_tables = set(inspector.get_table_names())
            problems: list[str] = []
            for table_name, table in sorted(Base.metadata.tables.items()):
                if table_name not in existing_tables:
                    problems.append(f"table {table_name} is missing")
                    continue
                live_columns = {column["name"] for column in inspector.get_columns(table_name)}
                for column_name in sorted(set(table.columns.keys()) - live_columns):
                    problems.append(f"column {table_name}.{column_name} is missing")
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc

    if problems:
        logging.getLogger(__name__).critical(
            "Schema mismatch: %s. Run 'alembic upgrade head' and restart.",
            "; ".join(problems),
        )
        raise RuntimeError(f"Schema mismatch: {'; '.join(problems)}. Run migrations and restart.")


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate DB connectivity and schema, start workers and the scheduler; stop them on exit."""
    _verify_database()
    logging.getLogger(__name__).info("Database connectivity and schema confirmed")

    from app.repositories.history_repository import get_history_store
    from app.scheduler.jobs import build_scheduler
    from app.services.import_job_manager import get_import_worker_pool

    worker_pool = get_import_worker_pool()
    worker_pool.start()

    scheduler = build_scheduler(get_history_store())
    scheduler.start()
    logging.getLogger(__name__).info("Scheduler started with %d jobs", len(scheduler.get_jobs()))
    try:
        yield
    finally:
        scheduler.shutdown(wait=True)
        logging.getLogger(__name__).info("Scheduler shut down")
        worker_pool.shutdown(wait=True)


def _repository_unavailable_handler(request: Request, exc: RepositoryUnavailableError) -> JSONResponse:
    logging.getLogger(__name__).error("Store unavailable path=%s error=%s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc)},
    )


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="Padron API",
        version="1.0.0",
        lifespan=_lifespan,
    )
    application.add_exception_handler(RepositoryUnavailableError, _repository_unavailable_handler)

    from app.api.routers import (
        bulk_import_router,
        column_dictionary_router,
        history_router,
        person_router,
    )

    application.include_router(bulk_import_router)
    application.include_router(column_dictionary_router)
    application.include_router(person_router)
    application.include_router(history_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()


def run() -> None:
    """Serve the API with uvicorn on API_HOST / API_PORT."""
    import uvicorn

    from app.config import get_server_settings

    settings = get_server_settings()
    uvicorn.run("app.main:app", host=settings.host, port=settings.port, reload=False)


if __name__ == "__main__":
    run()

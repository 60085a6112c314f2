import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from contextlib import asynccontextmanager

from .catalog import get_catalog
from .config import settings
from .db import close_pool, database_configured, initialize_database, open_pool
from .repos.record_store import build_record_store
from .routers import catalog, datasets, totals, upload


logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    database_available = False
    if database_configured():
        try:
            open_pool()  # open DB pool at startup
            initialize_database()
            database_available = True
        except Exception as exc:  # pragma: no cover - fallback for local dev without postgres
            logger.warning("Database initialization failed; continuing with JSON file storage: %s", exc)
            close_pool()
    else:
        logger.info("No DATABASE_URL configured; using JSON file storage in %s", settings.data_dir)
    app.state.database_available = database_available
    app.state.record_store = build_record_store(database_available, settings.data_dir, get_catalog().indicators)
    try:
        yield
    finally:
        close_pool()  # close pool at shutdown

app = FastAPI(
    title="HSE Reporting Backend",
    version="0.1.0",
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(catalog.router)
app.include_router(datasets.router)
app.include_router(totals.router)
app.include_router(upload.router)

@app.get("/api/health")
def health():
    store = getattr(app.state, "record_store", None)
    return {"ok": True, "storage": store.storage_name if store else None}

"""FastAPI application entry point."""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from attachvault.config import settings
from attachvault.database import async_session, create_tables, engine, get_db
from attachvault.services.blob_store import create_blob_store
from attachvault.services.container import build_services


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables, wire services and bring legacy data up to date."""
    await create_tables(engine)

    app.state.services = build_services(async_session, create_blob_store())

    # Probes make this a no-op once the backfills have completed
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        await app.state.services.migrations.run_all()

    yield

    await engine.dispose()


app = FastAPI(
    title="Attachvault API",
    version="1.0.0",
    description="Attachment lifecycle: references, access sync and crops.",
    lifespan=lifespan,
)

# CORS
origins = [o.strip() for o in settings.CORS_ORIGINS.split(",")]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/health")
async def health_check():
    """Verify API and database connectivity."""
    try:
        async for db in get_db():
            await db.execute(text("SELECT 1"))
            return {"status": "ok", "database": "connected"}
    except Exception as e:
        return {"status": "error", "database": str(e)}


# Register routers
from attachvault.routes.attachments import router as attachments_router
from attachvault.routes.docs import router as docs_router
app.include_router(attachments_router)
app.include_router(docs_router)

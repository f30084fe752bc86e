"""Main FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from auditlog import config
from auditlog.database import engine, Base
from auditlog.api.routes import router
# Import models to register them with SQLAlchemy Base
from auditlog.models.audit import AuditRecord  # noqa: F401
from auditlog.services.audit_writer import audit_writer
from auditlog.services.retention import RetentionSweeper

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger("auditlog")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create database tables
    Base.metadata.create_all(bind=engine)

    audit_writer.start()
    sweeper = None
    if config.RETENTION_DAYS > 0:
        sweeper = RetentionSweeper(config.RETENTION_DAYS, config.RETENTION_INTERVAL_SECONDS)
        sweeper.start()

    yield

    if sweeper is not None:
        sweeper.stop()
    # Flush pending audit records before the process exits
    audit_writer.stop()


# Create FastAPI app
app = FastAPI(
    title="Audit Log Service",
    description="Append-only audit trail with grouped operations and field-level diffs.",
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(router, prefix="/api", tags=["Audit Logs"])


# Health check
@app.get("/health")
def health_check():
    return {
        "status": "healthy",
        "service": "Audit Log Service",
        "audit_writer": "running" if audit_writer.running else "stopped"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)

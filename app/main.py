import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.database import Base, engine, safe_database_url
from app.config import settings
from app.core.errors import GenealogyError
from app.logging_config import configure_logging

# Import models so SQLAlchemy registers tables
from app.models import tree, person  # noqa: F401

# Routers
from app.routers import (
    auth_router,
    persons_router,
)

configure_logging()
logger = logging.getLogger(__name__)

# -----------------------
# CREATE APP
# -----------------------
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Family tree API: persons, parent links and the progenitor of each tree.",
    version="1.0.0",
)
logger.info("database url: %s", safe_database_url())
logger.info("connectivity policy: %s", settings.CONNECTIVITY_POLICY)

# -----------------------
# CORS
# -----------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -----------------------
# DATABASE TABLES
# -----------------------
Base.metadata.create_all(bind=engine)


# -----------------------
# GRAPH RULE VIOLATIONS
# -----------------------
@app.exception_handler(GenealogyError)
async def genealogy_error_handler(request: Request, exc: GenealogyError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# -----------------------
# ROUTES
# -----------------------
app.include_router(auth_router.router)
app.include_router(persons_router.router)


# -----------------------
# HEALTH CHECK
# -----------------------
@app.get("/")
def root():
    return {"message": "Family Tree API is running!"}

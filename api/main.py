"""
Garage Operations API.

Builds the FastAPI app: logging from LOG_LEVEL, CORS for the garage dashboard,
coordinator error handlers and the v1 routers.
"""

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__
from api.errors import register_error_handlers
from repositories.client import load_project_env

load_project_env()
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Garage Operations API",
    description="Staff provisioning, job card part allocation and inventory field options",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# TODO: Restrict origins to the garage dashboard host once it is deployed
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


@app.get("/health", tags=["Health"])
def health_check():
    """Liveness probe. Does not touch Supabase."""
    return {"status": "healthy", "version": __version__, "service": "garage-ops-api"}


@app.get("/", tags=["Root"])
def root():
    """Entry points of the API."""
    return {
        "service": "Garage Operations API",
        "version": __version__,
        "docs": "/docs",
        "employees": "/api/v1/employees",
        "job_card_parts": "/api/v1/job-cards/{job_card_id}/parts",
        "field_options": "/api/v1/inventory/field-options",
    }


from api.routers import employees, field_options, job_card_parts

app.include_router(employees.router, prefix="/api/v1", tags=["Employees"])
app.include_router(job_card_parts.router, prefix="/api/v1", tags=["Job Card Parts"])
app.include_router(field_options.router, prefix="/api/v1", tags=["Field Options"])

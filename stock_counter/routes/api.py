"""
Central API route registration. All HTTP controllers are mounted here with /api prefix.
"""
import logging
from fastapi import FastAPI

from stock_counter.http.controllers import (
    auth,
    inventory,
    locations,
    products,
)

logger = logging.getLogger(__name__)


def register_routes(app: FastAPI, settings) -> None:
    """Register all API routers. Call from main.py after creating the FastAPI app."""
    prefix = settings.API_PREFIX
    app.include_router(auth.router, prefix=f"{prefix}/auth", tags=["auth"])
    app.include_router(products.router, prefix=f"{prefix}/products", tags=["products"])
    app.include_router(inventory.router, prefix=f"{prefix}/update-inventory", tags=["inventory"])
    app.include_router(locations.router, prefix=f"{prefix}/locations", tags=["locations"])
    logger.debug("Registered API routes under %s", prefix)

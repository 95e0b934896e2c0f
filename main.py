"""
Stock Counter - FastAPI Backend
"""
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi import status
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn
import logging

from stock_counter.config import settings, DEFAULT_ENCRYPTION_KEY
from stock_counter.errors import StockCounterError
from stock_counter.routes.api import register_routes

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Stock Counter API",
    description="Location stock counts pushed to Shopify inventory",
    version="1.0.0",
    docs_url="/docs" if settings.IS_DEVELOPMENT else None,
    redoc_url="/redoc" if settings.IS_DEVELOPMENT else None,
)

# Log startup information
logger.info("Starting Stock Counter API")
logger.info("Environment: %s (production=%s, cloud=%s)", settings.ENV, settings.IS_PRODUCTION, settings.IS_CLOUD)
logger.info("Shop: %s, callback: %s", settings.SHOP, settings.OAUTH_REDIRECT_URI)

# Startup config validation (warn only)
if not settings.SHOPIFY_API_KEY or not settings.SHOPIFY_API_SECRET:
    logger.warning("SHOPIFY_API_KEY / SHOPIFY_API_SECRET not set. OAuth will fail until they are configured.")
if settings.IS_PRODUCTION and settings.ENCRYPTION_KEY == DEFAULT_ENCRYPTION_KEY:
    logger.warning("ENCRYPTION_KEY is the development default in production. Set a strong ENCRYPTION_KEY.")


def get_cors_headers(request: Request) -> dict:
    """CORS headers for responses built outside CORSMiddleware (unhandled 500s)"""
    origin = request.headers.get("origin", "")
    allowed_origins = settings.ALLOWED_ORIGINS
    if origin in allowed_origins:
        cors_origin = origin
    elif allowed_origins:
        cors_origin = allowed_origins[0]
    else:
        cors_origin = "*"
    return {
        "Access-Control-Allow-Origin": cors_origin,
        "Access-Control-Allow-Credentials": "true",
    }


@app.exception_handler(StockCounterError)
async def stock_counter_exception_handler(request: Request, exc: StockCounterError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.__class__.__name__, request.method, request.url.path, exc.message)
    else:
        logger.info("%s on %s %s: %s", exc.__class__.__name__, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("Validation error: %s", exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Invalid request",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Framework HTTP errors (404, 405, ...) in the same {error} shape"""
    message = "Method not allowed" if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": message},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Last resort: nothing reaches uvicorn as an uncaught exception"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": str(exc) if settings.IS_DEVELOPMENT else "An error occurred"},
        headers=get_cors_headers(request),
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

register_routes(app, settings)


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {
        "status": "ok",
        "service": "stock-counter",
        "environment": settings.ENV,
        "shop": settings.SHOP,
        "oauth_configured": bool(settings.SHOPIFY_API_KEY and settings.SHOPIFY_API_SECRET),
    }


@app.get("/")
async def root():
    """App root; the OAuth callback lands here"""
    return {
        "message": "Stock Counter API",
        "version": "1.0.0",
        "locations": "/api/locations",
        "health": "/health",
    }


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.IS_DEVELOPMENT,
        log_level=settings.LOG_LEVEL.lower()
    )

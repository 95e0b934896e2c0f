"""
Application configuration with automatic environment detection
"""
import os
from typing import List, Optional
from dotenv import load_dotenv

from stock_counter.models import Location

load_dotenv()

DEFAULT_ENCRYPTION_KEY = "stock-counter-dev-encryption-key!"


class Settings:
    """Application settings with automatic environment detection"""

    # Environment detection
    ENV = os.getenv("ENV", "DEV").upper()
    IS_PRODUCTION = ENV == "PROD" or ENV == "PRODUCTION"
    IS_DEVELOPMENT = not IS_PRODUCTION

    # Vercel sets VERCEL=1 and VERCEL_URL (host only, no scheme)
    VERCEL = os.getenv("VERCEL", "").lower() in ("1", "true")
    RENDER = os.getenv("RENDER", "").lower() == "true"
    IS_CLOUD = VERCEL or RENDER or bool(os.getenv("DYNO"))

    # Server configuration
    HOST = os.getenv("HOST", "0.0.0.0" if IS_CLOUD else "127.0.0.1")
    PORT = int(os.getenv("PORT", 8000))

    # Shopify app
    SHOP = os.getenv("SHOP", "panel-company.myshopify.com")
    SHOPIFY_API_KEY = os.getenv("SHOPIFY_API_KEY", "")
    SHOPIFY_API_SECRET = os.getenv("SHOPIFY_API_SECRET", "")
    SHOPIFY_ACCESS_TOKEN = os.getenv("SHOPIFY_ACCESS_TOKEN", "")
    SHOPIFY_API_VERSION = os.getenv("SHOPIFY_API_VERSION", "2024-01")
    # Fixed: the app only ever reads products/locations and sets inventory
    SHOPIFY_SCOPES = "read_products,read_inventory,write_inventory,read_locations"

    # Encryption (cookie sealing)
    ENCRYPTION_KEY = os.getenv("ENCRYPTION_KEY", DEFAULT_ENCRYPTION_KEY)
    COOKIE_SECURE = os.getenv("COOKIE_SECURE", "true").lower() in ("1", "true", "yes")

    # Outbound calls
    HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "30"))
    INVENTORY_UPDATE_DELAY_MS = int(os.getenv("INVENTORY_UPDATE_DELAY_MS", "100"))

    # Locations (external Shopify location ids)
    LOCATION_BRISTOL = os.getenv("LOCATION_BRISTOL", "62584946887")
    LOCATION_ROTHERHAM = os.getenv("LOCATION_ROTHERHAM", "62584914119")
    LOCATION_LONDON = os.getenv("LOCATION_LONDON", "71658701033")
    LOCATION_GATESHEAD = os.getenv("LOCATION_GATESHEAD", "105047294330")

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO" if IS_PRODUCTION else "DEBUG")

    # API Configuration
    API_PREFIX = "/api"

    @property
    def APP_URL(self) -> str:
        """Public base URL used to build the OAuth callback. VERCEL_URL wins when present."""
        vercel_url = os.getenv("VERCEL_URL", "").strip()
        if vercel_url:
            return f"https://{vercel_url}"
        return (os.getenv("SHOPIFY_APP_URL", "") or "https://stock-counter-rho.vercel.app").rstrip("/")

    @property
    def OAUTH_REDIRECT_URI(self) -> str:
        return f"{self.APP_URL}{self.API_PREFIX}/auth/callback"

    @property
    def INVENTORY_UPDATE_DELAY(self) -> float:
        """Pause after each inventory mutation, in seconds."""
        return max(self.INVENTORY_UPDATE_DELAY_MS, 0) / 1000.0

    @property
    def LOCATIONS(self) -> List[Location]:
        """Configured store locations, in display order."""
        return [
            Location(key="bristol", external_id=self.LOCATION_BRISTOL, display_name="Bristol"),
            Location(key="rotherham", external_id=self.LOCATION_ROTHERHAM, display_name="Rotherham"),
            Location(key="london", external_id=self.LOCATION_LONDON, display_name="London"),
            Location(key="gateshead", external_id=self.LOCATION_GATESHEAD, display_name="Gateshead"),
        ]

    def get_location(self, key_or_id: str) -> Optional[Location]:
        """Look a location up by key (``bristol``) or external id."""
        wanted = (key_or_id or "").strip()
        for location in self.LOCATIONS:
            if wanted in (location.key, location.external_id):
                return location
        return None

    # CORS - dynamic based on ALLOWED_ORIGINS environment variable
    @property
    def ALLOWED_ORIGINS(self) -> List[str]:
        """Get allowed CORS origins from environment variable (plus localhost in development)"""
        origins = []
        if self.IS_DEVELOPMENT:
            origins.extend([
                "http://localhost:3000",
                "http://127.0.0.1:3000",
            ])

        env_origins = os.getenv("ALLOWED_ORIGINS", "")
        for origin in env_origins.split(","):
            origin = origin.strip()
            if origin and origin not in origins:
                origins.append(origin)
        return origins

    def __str__(self):
        return f"Settings(ENV={self.ENV}, IS_PRODUCTION={self.IS_PRODUCTION}, IS_CLOUD={self.IS_CLOUD})"


# Global settings instance
settings = Settings()

# services/api/settings.py
from pydantic_settings import BaseSettings
from pydantic import ConfigDict, Field
from typing import List
from pathlib import Path

class Settings(BaseSettings):
    # Storage settings
    # Document metadata backend: "json" (file document store) or "sqlite"
    storage_backend: str = "json"
    data_dir: str = "data"
    db_url: str = "sqlite:///data/docsign.db"

    # Blob store root; originals live in <uploads_dir>/pdf, outputs in <uploads_dir>/signed
    uploads_dir: str = "uploads"
    max_upload_mb: int = 10

    # Auth
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24

    # "production" hides internal error diagnostics from responses
    environment: str = "development"

    # CORS settings
    allowed_origins: str = "http://localhost:3000,http://localhost:5173,http://localhost:8000"

    # ---- Placement / composition settings ----

    # Used when the client does not declare the viewport it placed signatures on
    default_page_width: float = 800.0
    default_page_height: float = 600.0

    # Raster signatures are shrunk (never enlarged) to fit this box, in points
    signature_max_width: float = 150.0
    signature_max_height: float = 60.0

    text_font: str = "helvetica"
    text_font_size: float = 12.0

    # Drawn instead of an empty text payload or a raster that fails to decode
    placeholder_text: str = Field(
        default="SIGNED",
        description="Marker rendered when a placement cannot be drawn as requested",
    )

    # Guards against pathological image payloads (checked before full decode)
    max_image_payload_bytes: int = 5 * 1024 * 1024
    max_image_pixels: int = 25_000_000

    model_config = ConfigDict(
        # Always load .env from the same folder as this settings.py
        env_file=str(Path(__file__).resolve().parent / ".env"),
        extra="ignore",
    )

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"

    def get_origins_list(self) -> List[str]:
        """Parse comma-separated origins into a list."""
        if not self.allowed_origins:
            return ["*"]
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


_settings_instance = None

def get_settings() -> Settings:
    """Singleton pattern for settings."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance

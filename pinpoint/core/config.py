from urllib.parse import quote_plus

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "pinpoint"
    db_user: str = "postgres"
    db_password: str = "postgres"
    database_url_override: str | None = None

    jwt_secret_key: str = "replace-this-secret"
    jwt_algorithm: str = "HS256"
    access_token_expiry_hours: int = 8

    log_level: str = "INFO"
    cors_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
    )

    # Overlay drawing
    arrow_head_size: float = 10.0
    arrow_stroke_width: float = 2.0
    dot_radius: float = 4.0
    hidden_opacity: float = 0.3
    hit_radius_px: float = 8.0

    # Interaction
    drag_threshold: float = 1.0
    default_dot_label: str = "New annotation"
    default_arrow_label: str = "New arrow"

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", env_file_encoding="utf-8")

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        password = quote_plus(self.db_password)
        return f"postgresql+psycopg://{self.db_user}:{password}@{self.db_host}:{self.db_port}/{self.db_name}"


settings = Settings()

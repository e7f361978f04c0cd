from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url_async: str
    database_url_sync: str

    tmdb_api_key: str
    tmdb_base_url: str = "https://api.themoviedb.org/3"
    tmdb_language: str = "en-US"

    omdb_api_key: str | None = None
    omdb_base_url: str = "https://www.omdbapi.com"

    itunes_base_url: str = "https://itunes.apple.com"

    google_books_api_key: str | None = None
    google_books_base_url: str = "https://www.googleapis.com/books/v1"

    rawg_api_key: str | None = None
    rawg_base_url: str = "https://api.rawg.io/api"

    http_timeout_secs: float = 10.0

    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 7

    @model_validator(mode="after")
    def validate_secrets(self) -> "Settings":
        """Validate that API keys and secrets are set and not placeholder values."""
        if self.tmdb_api_key in ("your_tmdb_api_key_here", "PUT_YOUR_TMDB_KEY_HERE", ""):
            raise ValueError(
                "TMDB_API_KEY is not properly configured. "
                "Get your API key from https://www.themoviedb.org/settings/api"
            )
        if self.jwt_secret_key in ("change_me", "your_secret_here", ""):
            raise ValueError(
                "JWT_SECRET_KEY is not properly configured. "
                "Generate one with: python -c 'import secrets; print(secrets.token_urlsafe(48))'"
            )
        return self


settings = Settings()

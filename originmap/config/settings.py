"""Application settings loaded from environment variables via pydantic-settings.

Values come from, in priority order:

  1. Environment variables, e.g. ``ORIGIN_CACHE_VALIDITY_DAYS=14``
  2. The ``.env`` file in the working directory (local development)
  3. The defaults declared below

Field ``musicbrainz_search_delay`` maps to env var ``MUSICBRAINZ_SEARCH_DELAY``
and so on; pydantic-settings matches case-insensitively.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """originmap application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Artist metadata (MusicBrainz) ===
    musicbrainz_base_url: str = "https://musicbrainz.org/ws/2"
    musicbrainz_app_name: str = "originmap"
    musicbrainz_app_version: str = "0.1.0"
    musicbrainz_contact: str = "http://localhost:8000"
    # MusicBrainz allows one request per second per client.
    musicbrainz_search_delay: float = 1.1
    musicbrainz_area_delay: float = 0.5
    musicbrainz_search_limit: int = 5
    area_max_depth: int = 5

    # === Persistent origin cache ===
    origin_cache_db_path: str = "data/origin_cache.db"
    origin_cache_validity_days: int = 30
    # Finished sessions kept in memory before the oldest is evicted.
    resolution_max_sessions: int = 256

    # === Streaming library (Spotify Web API) ===
    spotify_api_base_url: str = "https://api.spotify.com/v1"
    spotify_page_size: int = 50
    spotify_max_retries: int = 3
    spotify_retry_backoff: float = 0.3
    spotify_batch_size: int = 10
    spotify_batch_pause: float = 0.05

    # === Admin ===
    # Empty = any bearer token may clear unknown entries.
    admin_api_token: str = ""

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    @property
    def musicbrainz_user_agent(self) -> str:
        """User-Agent string MusicBrainz requires from every client."""
        return (
            f"{self.musicbrainz_app_name}/{self.musicbrainz_app_version} "
            f"({self.musicbrainz_contact})"
        )

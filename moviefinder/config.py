"""
MovieFinder — Application Settings

Design patterns:
  - Singleton: single Settings instance shared everywhere
  - Configuration Object: centralizes all env-based config
"""

from __future__ import annotations

from typing import Dict, Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration sourced from environment / .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Search strategy ───────────────────────────────────
    movie_source: Literal["catalog", "generative"] = "catalog"
    max_results: int = 8
    cast_limit: int = 4
    watch_region: str = "IN"          # ISO 3166-1 code for streaming lookups
    search_language: str = "en-US"

    # ── TMDB ──────────────────────────────────────────────
    tmdb_api_key: str = ""
    tmdb_api_read_token: Optional[str] = None
    tmdb_base_url: str = "https://api.themoviedb.org/3"
    tmdb_image_base: str = "https://image.tmdb.org/t/p/w500"
    poster_placeholder_url: str = "https://via.placeholder.com/500x750?text=No+Poster"

    # ── vLLM (generative source) ──────────────────────────
    vllm_base_url: str = "http://localhost:8001/v1"
    vllm_model: str = "Qwen3-30B-A3B-Instruct"
    vllm_api_key: str = "EMPTY"

    # ── App ───────────────────────────────────────────────
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "info"
    session_ttl_minutes: int = 120

    # ── Derived helpers ───────────────────────────────────
    @property
    def tmdb_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.tmdb_api_read_token:
            headers["Authorization"] = f"Bearer {self.tmdb_api_read_token}"
        return headers

    @property
    def tmdb_auth_params(self) -> Dict[str, str]:
        return {"api_key": self.tmdb_api_key} if self.tmdb_api_key else {}


# Singleton – import this everywhere
settings = Settings()

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class Settings(BaseSettings):
    """
    Central configuration for the stock valuation MCP server.

    All values are loaded from environment variables with `STOCK_MCP_` prefix.
    You can also use a `.env` file in the working directory during development.
    """

    model_config = SettingsConfigDict(
        env_prefix="STOCK_MCP_",
        env_file=".env",
        extra="ignore",
    )

    # General
    env: str = "dev"
    server_port: int = 2901
    server_host: str = "0.0.0.0"
    transport: str = "stdio"  # "stdio" or "http"

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    # SET Watch API
    set_watch_api_host: str = "https://set-watch-api.vercel.app"
    set_watch_api_timeout: float = 30.0
    api_auth_header: Optional[str] = None
    api_auth_value: Optional[str] = None

    # Web tools
    http_timeout: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT

    # Filesystem tools are confined to this directory (defaults to cwd)
    fs_root: Optional[Path] = None

    def set_watch_headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": "Stock-Valuation-MCP-Server/1.0.0",
        }
        if self.api_auth_header and self.api_auth_value:
            headers[self.api_auth_header] = self.api_auth_value
        return headers

    def resolved_fs_root(self) -> Path:
        return (self.fs_root or Path.cwd()).resolve()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load and cache settings from environment."""
    return Settings()

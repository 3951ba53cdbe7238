# app/config.py
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Filesystem sandbox (comma separated; CLI arguments take precedence)
    ALLOWED_DIRECTORIES: str = ""
    TRASH_DIRNAME: str = "Trash"

    # Environment probes
    PROBE_TIMEOUT_SEC: float = 30.0

    SERVER_NAME: str = "secure-filesystem-server"
    SERVER_VERSION: str = "0.2.0"

    # HTTP MCP transport
    MCP_HTTP_HOST: str = "127.0.0.1"
    MCP_HTTP_PORT: int = 8080
    MCP_HTTP_PATH: str = "/mcp"
    MCP_HTTP_ALLOWED_ORIGINS: str = "http://localhost, http://127.0.0.1"
    MCP_HTTP_ALLOW_NO_ORIGIN: bool = True            # allow non-browser clients

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_ARG_PREVIEW_CHARS: int = 200

    class Config:
        env_file = ".env"

    def allowed_directories(self) -> List[str]:
        return [d.strip() for d in self.ALLOWED_DIRECTORIES.split(",") if d.strip()]

    def allowed_origins(self) -> set[str]:
        return {o.strip().lower() for o in self.MCP_HTTP_ALLOWED_ORIGINS.split(",") if o.strip()}

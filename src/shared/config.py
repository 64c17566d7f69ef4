"""
Base configuration for the MCP server and its backend clients.

Uses Pydantic Settings for environment-based configuration.
The server extends BaseServerSettings with its own transport options.
"""

from pydantic_settings import BaseSettings


class BaseServerSettings(BaseSettings):
    """Connection settings shared by every component."""

    # FalkorDB connection
    falkordb_host: str = "localhost"
    falkordb_port: int = 6379
    falkordb_username: str = ""
    falkordb_password: str = ""

    # Graph queries run with GRAPH.RO_QUERY unless the caller says otherwise
    falkordb_default_readonly: bool = False

    # Redis connection
    redis_url: str = "redis://localhost:6379"
    redis_username: str = ""
    redis_password: str = ""

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

"""
Gate configuration definition.

Loads configuration from environment variables and provides a Pydantic model.
Uses pydantic-settings for type safety and defaults.
"""

from typing import Optional

from pydantic import Field

from services.common.core.config import BaseAppConfig

from .exceptions import ConfigurationError
from .models import BackendEndpoint


class GateConfig(BaseAppConfig):
    """
    Configuration management for the authorization gate.
    """

    # Server settings
    UVICORN_WORKERS: int = Field(default=1, description="Number of worker processes")
    UVICORN_BIND_ADDR: str = Field(default="0.0.0.0:8000", description="Listen address")

    # Backend
    WWWHISPER_URL: Optional[str] = Field(
        default=None, description="Origin of the wwwhisper backend, credentials allowed"
    )
    WWWHISPER_DISABLE: bool = Field(
        default=False, description="Serve every request without authorization"
    )
    WWWHISPER_TIMEOUT: float = Field(default=30.0, description="Backend call timeout (seconds)")
    WWWHISPER_MAX_CONNECTIONS: int = Field(
        default=500, description="Max pooled connections to the backend"
    )

    # Response rewriting
    WWWHISPER_INJECT_LOGOUT: bool = Field(
        default=True, description="Insert the login/logout iframe script into HTML pages"
    )

    # Paths
    LOG_CONFIG_PATH: str = Field(
        default="config/authgate_log.yaml", description="Logging dictConfig YAML path"
    )
    SITE_ROOT: str = Field(default="site", description="Directory served by the default site")

    def resolve_endpoint(self) -> Optional[BackendEndpoint]:
        """
        Return the backend endpoint, or None when the gate is disabled.

        Raises:
            ConfigurationError: neither WWWHISPER_URL nor WWWHISPER_DISABLE is set
        """
        if self.WWWHISPER_URL:
            return BackendEndpoint.from_url(self.WWWHISPER_URL)
        if self.WWWHISPER_DISABLE:
            return None
        raise ConfigurationError("WWWHISPER_URL nor WWWHISPER_DISABLE environment variable set")

"""
Credentials and tunables for the Airtable client.

Credentials come from explicit arguments, the environment, or a YAML file:

    airtable:
      base_url: https://api.airtable.com/v0
      api_key_env: AIRTABLE_API_KEY
      rate_limit: 10
      timeout: 30
      max_retries: 20
"""

import os
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from airtable_errors import ConfigurationError

API_KEY_ENV = "AIRTABLE_API_KEY"
DEFAULT_BASE_URL = "https://api.airtable.com/v0"


class ClientCredentials(BaseModel):
    model_config = ConfigDict(frozen=True)

    api_key: str
    base_url: str = DEFAULT_BASE_URL

    def auth_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }


class ClientSettings(BaseModel):
    """Request pipeline tunables. Defaults match Airtable's published limits."""

    model_config = ConfigDict(frozen=True)

    rate_limit: float = Field(default=10, gt=0)        # req / sec
    timeout: float = Field(default=30.0, gt=0)         # seconds, per attempt
    max_retries: int = Field(default=20, ge=0)         # retries on 422
    initial_backoff: float = Field(default=0.2, ge=0)  # seconds
    backoff_multiple: float = Field(default=10, ge=1)
    max_backoff: float = Field(default=300.0, ge=0)    # seconds
    batch_size: int = Field(default=10, ge=1)


def make_credentials(api_key: Optional[str], base_url: Optional[str] = None) -> ClientCredentials:
    if not api_key:
        raise ConfigurationError("Empty Airtable API key")
    return ClientCredentials(api_key=api_key, base_url=base_url or DEFAULT_BASE_URL)


def load_credentials(env_var: str = API_KEY_ENV, base_url: str = DEFAULT_BASE_URL) -> ClientCredentials:
    """Read the API key from the environment."""
    key = os.environ.get(env_var)
    if not key:
        raise ConfigurationError(f"Empty {env_var}")
    return make_credentials(key, base_url)


class Config:
    """
    YAML configuration file holding an ``airtable`` section.

    The API key itself is never stored in the file, only the name of the
    environment variable that carries it.
    """

    def __init__(self, path: str):
        try:
            with open(path, "r") as f:
                self.cfg = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigurationError(f"Cannot read config {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

        if not isinstance(self.cfg, dict):
            raise ConfigurationError(f"Config {path} must contain a mapping")

        self.airtable: Dict[str, Any] = self.cfg.get("airtable") or {}
        self.base_url = self.airtable.get("base_url", DEFAULT_BASE_URL)
        self.api_key_env = self.airtable.get("api_key_env", API_KEY_ENV)

        tunables = {k: v for k, v in self.airtable.items() if k in ClientSettings.model_fields}
        try:
            self.settings = ClientSettings(**tunables)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid airtable settings in {path}: {e}") from e

    def credentials(self) -> ClientCredentials:
        return load_credentials(self.api_key_env, self.base_url)

"""Configuration management for the Plausible connector."""

import os
from dataclasses import dataclass
from typing import Any, Optional

import pytz

# Constants
DEFAULT_REPORTING_TIMEZONE = "Europe/Berlin"  # Timezone of the Plausible dashboard
DEFAULT_PAGE_SIZE = 1000
DEFAULT_API_URL = "https://plausible.io/api/v2/query"
DEFAULT_REQUEST_TIMEOUT_SECONDS = 30
MAX_PAGE_SIZE = 10000  # Largest pagination limit accepted by the Plausible Stats API


class ConfigurationError(ValueError):
    """Raised when a required secret or configuration value is missing or invalid."""


@dataclass(frozen=True)
class SyncConfig:
    """Deployment-time settings shared by the sync planner and checkpoint advancer."""

    reporting_timezone: str = DEFAULT_REPORTING_TIMEZONE
    page_size: int = DEFAULT_PAGE_SIZE
    api_url: str = DEFAULT_API_URL
    request_timeout_seconds: int = DEFAULT_REQUEST_TIMEOUT_SECONDS

    @property
    def timezone(self):
        return pytz.timezone(self.reporting_timezone)


@dataclass(frozen=True)
class PlausibleCredentials:
    """API key and site identifier used to query Plausible."""

    api_key: str
    site_id: str


def _safe_int(value: Any, default: int) -> int:
    if value is None or str(value).strip() == "":
        return default
    try:
        return int(str(value).strip())
    except (ValueError, TypeError):
        raise ConfigurationError(f"Expected an integer value, got: {value!r}")


def _safe_str(value: Any, default: str) -> str:
    if value is None or str(value).strip() == "":
        return default
    return str(value).strip()


def build_config(
    reporting_timezone: Any = None,
    page_size: Any = None,
    api_url: Any = None,
    request_timeout_seconds: Any = None,
) -> SyncConfig:
    """
    Build a validated SyncConfig, falling back to defaults for unset values.
    Raises:
        ConfigurationError: if any value is invalid.
    """
    config = SyncConfig(
        reporting_timezone=_safe_str(reporting_timezone, DEFAULT_REPORTING_TIMEZONE),
        page_size=_safe_int(page_size, DEFAULT_PAGE_SIZE),
        api_url=_safe_str(api_url, DEFAULT_API_URL),
        request_timeout_seconds=_safe_int(
            request_timeout_seconds, DEFAULT_REQUEST_TIMEOUT_SECONDS
        ),
    )
    validate_config(config)
    return config


def parse_configuration(configuration: dict) -> SyncConfig:
    """Parse the optional sync settings from a Connector SDK configuration dictionary."""
    return build_config(
        reporting_timezone=configuration.get("reporting_timezone"),
        page_size=configuration.get("page_size"),
        api_url=configuration.get("api_url"),
        request_timeout_seconds=configuration.get("request_timeout_seconds"),
    )


def load_config_from_env(environ: Optional[dict] = None) -> SyncConfig:
    """
    Read the sync settings for the function connector from environment variables.
    The reporting timezone is deployment configuration and is never taken from request data.
    """
    environ = os.environ if environ is None else environ
    return build_config(
        reporting_timezone=environ.get("PLAUSIBLE_REPORTING_TIMEZONE"),
        page_size=environ.get("PLAUSIBLE_PAGE_SIZE"),
        api_url=environ.get("PLAUSIBLE_API_URL"),
        request_timeout_seconds=environ.get("PLAUSIBLE_REQUEST_TIMEOUT_SECONDS"),
    )


def validate_config(config: SyncConfig) -> None:
    """Validate the sync settings."""
    try:
        pytz.timezone(config.reporting_timezone)
    except pytz.exceptions.UnknownTimeZoneError:
        raise ConfigurationError(f"Unknown reporting timezone: {config.reporting_timezone}")

    if not (1 <= config.page_size <= MAX_PAGE_SIZE):
        raise ConfigurationError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")

    if config.request_timeout_seconds <= 0:
        raise ConfigurationError("request_timeout_seconds must be a positive number of seconds")

    if not config.api_url.startswith(("http://", "https://")):
        raise ConfigurationError(f"api_url must be an http(s) URL, got: {config.api_url}")


def credentials_from_secrets(secrets: Optional[dict]) -> PlausibleCredentials:
    """
    Extract the Plausible credentials from the secrets of a function connector request.
    Raises:
        ConfigurationError: if the API key or site ID is missing.
    """
    secrets = secrets if isinstance(secrets, dict) else {}
    api_key = secrets.get("plausibleApiKey")
    site_id = secrets.get("siteId")
    if not api_key or not site_id:
        raise ConfigurationError("Missing 'plausibleApiKey' or 'siteId' secret!")
    return PlausibleCredentials(api_key=str(api_key), site_id=str(site_id))


def credentials_from_configuration(configuration: dict) -> PlausibleCredentials:
    """
    Extract the Plausible credentials from a Connector SDK configuration dictionary.
    Raises:
        ConfigurationError: if any required configuration parameter is missing.
    """
    for key in ("api_key", "site_id"):
        if not configuration.get(key):
            raise ConfigurationError(f"Missing required configuration value: {key}")
    return PlausibleCredentials(
        api_key=str(configuration["api_key"]).strip(),
        site_id=str(configuration["site_id"]).strip(),
    )

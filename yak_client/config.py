"""Configuration handling for the Yak client."""

import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

DEFAULT_API_BASE = "https://yikyakapp.com/api/"
DEFAULT_USER_AGENT = (
    "Mozilla/5.1 (Linux; Android 4.0.4; Galaxy Nexus Build/IMM76B) "
    "AppleWebKit/535.19 (KHTML, like Gecko) Chrome/18.0.1025.133 Mobile Safari/535.19"
)
# Key shipped in the official client; override with YAK_SIGNING_KEY when it rotates.
DEFAULT_SIGNING_KEY = "35FD04E8-B7B1-45C4-9886-94A75F4A2BB4"
DEFAULT_GEOCODER_URL = "https://nominatim.openstreetmap.org/reverse"
DEFAULT_LOG_FILE = "logs/yak_client.log"

IDENTITY_PATTERN = re.compile(r"^[0-9A-F]{32}$")


@dataclass
class ApiConfig:
    """Yik Yak API endpoint and signing configuration."""

    api_base: str = DEFAULT_API_BASE
    user_agent: str = DEFAULT_USER_AGENT
    signing_key: str = DEFAULT_SIGNING_KEY
    request_timeout_sec: float = 10.0

    def endpoint_url(self, page: str) -> str:
        """Full URL of an API page."""
        return self.api_base.rstrip("/") + "/" + page


@dataclass
class GeocoderConfig:
    """Reverse geocoding service configuration."""

    url: str = DEFAULT_GEOCODER_URL
    user_agent: str = "yak_client/0.1"
    timeout_sec: float = 10.0


@dataclass
class FeedConfig:
    """Per-branch time limits for building the enriched feed."""

    geocode_timeout_sec: float = 10.0
    comment_timeout_sec: float = 10.0


@dataclass
class MonitoringConfig:
    """Monitoring configuration."""

    enable_prometheus: bool = False
    prometheus_port: int = 8000


def _merge_section(section: Any, values: Dict[str, Any]) -> None:
    """Copy known keys from a YAML mapping onto a config section."""
    for key, value in values.items():
        if hasattr(section, key):
            setattr(section, key, value)


@dataclass
class Config:
    """Application configuration combining environment variables and YAML config."""

    latitude: Optional[float] = None
    longitude: Optional[float] = None
    user_id: Optional[str] = None
    log_level: str = "INFO"
    log_file: str = DEFAULT_LOG_FILE
    api: ApiConfig = field(default_factory=ApiConfig)
    geocoder: GeocoderConfig = field(default_factory=GeocoderConfig)
    feed: FeedConfig = field(default_factory=FeedConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)

    @classmethod
    def from_files(cls, config_path: str, env_path: Optional[str] = None) -> "Config":
        """
        Load configuration from YAML file and environment variables.

        Environment variables take precedence over the YAML file.

        Args:
            config_path: Path to YAML configuration file (may not exist)
            env_path: Optional path to .env file (defaults to .env in current directory)

        Returns:
            Config instance with merged configuration
        """
        if env_path:
            load_dotenv(env_path)
        else:
            load_dotenv()

        config = cls()

        if os.path.exists(config_path):
            with open(config_path, "r", encoding="utf-8") as file:
                yaml_config = yaml.safe_load(file) or {}

            sections = {
                "api": config.api,
                "geocoder": config.geocoder,
                "feed": config.feed,
                "monitoring": config.monitoring,
            }
            for key, value in yaml_config.items():
                if key in sections:
                    if isinstance(value, dict):
                        _merge_section(sections[key], value)
                elif hasattr(config, key):
                    setattr(config, key, value)

        config.api.api_base = os.getenv("YAK_API_BASE", config.api.api_base)
        config.api.user_agent = os.getenv("YAK_USER_AGENT", config.api.user_agent)
        config.api.signing_key = os.getenv("YAK_SIGNING_KEY", config.api.signing_key)
        config.geocoder.url = os.getenv("GEOCODER_URL", config.geocoder.url)
        config.user_id = os.getenv("YAK_USER_ID", config.user_id)
        config.log_file = os.getenv("YAK_LOG_FILE", config.log_file)

        latitude = os.getenv("YAK_LATITUDE")
        if latitude:
            config.latitude = float(latitude)
        longitude = os.getenv("YAK_LONGITUDE")
        if longitude:
            config.longitude = float(longitude)

        return config

    def validate(self) -> List[str]:
        """
        Validate configuration and return a list of validation errors.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if self.latitude is None or self.longitude is None:
            errors.append("Both latitude and longitude must be configured")
        elif not all(isinstance(v, (int, float)) for v in (self.latitude, self.longitude)):
            errors.append("latitude and longitude must be numbers")
        else:
            if not -90.0 <= float(self.latitude) <= 90.0:
                errors.append("latitude must be between -90 and 90")
            if not -180.0 <= float(self.longitude) <= 180.0:
                errors.append("longitude must be between -180 and 180")

        if self.user_id and not IDENTITY_PATTERN.match(self.user_id):
            errors.append("user_id must be 32 uppercase hexadecimal characters")

        if not self.api.signing_key:
            errors.append("Missing YAK_SIGNING_KEY (api.signing_key is empty)")
        if not self.api.api_base:
            errors.append("api.api_base must not be empty")
        if not self.log_file:
            errors.append("log_file must not be empty")

        if self.api.request_timeout_sec <= 0:
            errors.append("api.request_timeout_sec must be greater than 0")
        if self.geocoder.timeout_sec <= 0:
            errors.append("geocoder.timeout_sec must be greater than 0")
        if self.feed.geocode_timeout_sec <= 0:
            errors.append("feed.geocode_timeout_sec must be greater than 0")
        if self.feed.comment_timeout_sec <= 0:
            errors.append("feed.comment_timeout_sec must be greater than 0")

        return errors

"""Configuration management for the Tankerkoenig exporter."""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from tk_exporter.models.errors import ConfigurationError


DEFAULT_BASE_URL = "https://creativecommons.tankerkoenig.de/"
GEOHASH_ALPHABET = "0123456789bcdefghjkmnpqrstuvwxyz"


def split_stations(values: Any) -> List[str]:
    """
    Flatten station ids given as a list, comma-separated strings or both.

    Empty entries are dropped and duplicates collapsed, keeping first-seen order.
    """
    if values is None:
        return []
    if isinstance(values, str):
        values = [values]

    stations: List[str] = []
    for value in values:
        for part in str(value).split(","):
            part = part.strip()
            if part and part not in stations:
                stations.append(part)
    return stations


def parse_listen_address(address: str) -> Tuple[str, int]:
    """
    Split ``host:port`` into its parts. An empty host means all interfaces.

    Raises:
        ValueError: If the address has no valid port
    """
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"listen address must look like host:port, got: {address!r}")
    port_number = int(port)
    if not 0 < port_number < 65536:
        raise ValueError(f"listen address port out of range: {port_number}")
    host = host.strip("[]") or "0.0.0.0"
    return host, port_number


class ExporterConfig(BaseModel):
    """Exporter configuration."""

    # Tankerkoenig API
    api_key: str = Field(default="", description="Personal Tankerkoenig API key")
    base_url: str = Field(default=DEFAULT_BASE_URL, description="Tankerkoenig API base URL")

    # Station selection, exactly one of stations or location
    stations: List[str] = Field(default_factory=list, description="Station ids to monitor")
    location: Optional[str] = Field(default=None, description="Geohash to search stations around")
    radius: int = Field(default=10, description="Search radius in kilometers")

    # HTTP client
    request_timeout: float = Field(default=15.0, description="Read, write and pool timeout in seconds")
    connect_timeout: float = Field(default=3.0, description="HTTP connect timeout in seconds")
    max_retries: int = Field(default=2, description="Retries for transient API failures")
    retry_base_delay: float = Field(default=0.5, description="Base delay for exponential backoff")
    retry_max_delay: float = Field(default=4.0, description="Maximum retry delay")

    # Web server
    listen_address: str = Field(default=":9386", description="Address to expose metrics on")
    telemetry_path: str = Field(default="/metrics", description="Path under which metrics are exposed")

    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("stations", mode="before")
    @classmethod
    def validate_stations(cls, v: Any) -> List[str]:
        """Accept comma-separated strings as well as lists."""
        return split_stations(v)

    @field_validator("location")
    @classmethod
    def validate_location(cls, v: Optional[str]) -> Optional[str]:
        """Validate the location is a geohash."""
        if v is None:
            return None
        v = v.strip().lower()
        if not v:
            return None
        invalid = sorted(set(v) - set(GEOHASH_ALPHABET))
        if invalid:
            raise ValueError(f"location must be a geohash, invalid characters: {''.join(invalid)}")
        return v

    @field_validator("radius")
    @classmethod
    def validate_radius(cls, v: int) -> int:
        """The API accepts radii between 1 and 25 km."""
        if not 1 <= v <= 25:
            raise ValueError(f"radius must be between 1 and 25, got: {v}")
        return v

    @field_validator("telemetry_path")
    @classmethod
    def validate_telemetry_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"telemetry_path must start with '/', got: {v!r}")
        return v

    @field_validator("listen_address")
    @classmethod
    def validate_listen_address(cls, v: str) -> str:
        parse_listen_address(v)
        return v

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"base_url must start with http:// or https://, got: {v}")
        return v if v.endswith("/") else v + "/"

    @field_validator("max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"max_retries must not be negative, got: {v}")
        return v

    @field_validator("request_timeout", "connect_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"timeouts must be positive, got: {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR"):
            raise ValueError(f"log_level must be one of DEBUG, INFO, WARNING, ERROR, got: {v}")
        return v

    @model_validator(mode="after")
    def validate_station_selection(self) -> "ExporterConfig":
        """Exactly one of stations or location must be set."""
        if not self.api_key:
            raise ValueError("missing api key, did you forget to export TANKERKOENIG_API_KEY?")
        if self.stations and self.location:
            raise ValueError("stations and location are mutually exclusive")
        if not self.stations and not self.location:
            raise ValueError("one of stations or location must be specified")
        return self

    @property
    def host(self) -> str:
        return parse_listen_address(self.listen_address)[0]

    @property
    def port(self) -> int:
        return parse_listen_address(self.listen_address)[1]

    @staticmethod
    def env_overrides() -> Dict[str, Any]:
        """Collect configuration values set through environment variables."""
        env_mappings = {
            "TANKERKOENIG_API_KEY": "api_key",
            "TK_EXPORTER_BASE_URL": "base_url",
            "TK_EXPORTER_STATIONS": "stations",
            "TK_EXPORTER_LOCATION": "location",
            "TK_EXPORTER_RADIUS": "radius",
            "TK_EXPORTER_REQUEST_TIMEOUT": "request_timeout",
            "TK_EXPORTER_MAX_RETRIES": "max_retries",
            "TK_EXPORTER_LISTEN_ADDRESS": "listen_address",
            "TK_EXPORTER_TELEMETRY_PATH": "telemetry_path",
            "TK_EXPORTER_LOG_LEVEL": "log_level",
        }

        overrides: Dict[str, Any] = {}
        for env_var, field_name in env_mappings.items():
            value = os.environ.get(env_var)
            if value:
                # Pydantic coerces the strings to the field types
                overrides[field_name] = value
        return overrides


class ConfigManager:
    """Loads configuration with precedence CLI > ENV > YAML > defaults."""

    def __init__(self, config_file: Optional[Path] = None):
        self.config_file = config_file or Path("config/config.yaml")
        self._config: Optional[ExporterConfig] = None

    def load_config(self, cli_overrides: Optional[Dict[str, Any]] = None) -> ExporterConfig:
        """
        Load and validate the exporter configuration.

        Args:
            cli_overrides: Optional dictionary of CLI flag overrides. None values
                and empty station lists are ignored so they don't mask lower tiers.

        Returns:
            Validated ExporterConfig

        Raises:
            ConfigurationError: If the file can't be parsed or validation fails
        """
        config_dict: Dict[str, Any] = {}

        if self.config_file.exists():
            try:
                with open(self.config_file, "r") as f:
                    yaml_config = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"invalid config file {self.config_file}: {e}") from e
            if yaml_config:
                if not isinstance(yaml_config, dict):
                    raise ConfigurationError(f"config file {self.config_file} must contain a mapping")
                config_dict.update(yaml_config)

        _merge_tier(config_dict, ExporterConfig.env_overrides())
        _merge_tier(config_dict, cli_overrides or {})

        try:
            self._config = ExporterConfig(**config_dict)
        except ValidationError as e:
            raise ConfigurationError(_format_validation_error(e)) from e
        return self._config

    @property
    def config(self) -> ExporterConfig:
        """Get the loaded configuration."""
        if self._config is None:
            self._config = self.load_config()
        return self._config


def _merge_tier(config_dict: Dict[str, Any], tier: Dict[str, Any]) -> None:
    """
    Merge one configuration tier over the lower ones.

    None values and empty station lists are skipped so they don't mask lower
    tiers. A station list replaces a location from a lower tier and vice
    versa; both set in the same tier is still an error.
    """
    values = {k: v for k, v in tier.items() if v is not None and v != [] and v != ()}

    if values.get("stations") and not values.get("location"):
        config_dict.pop("location", None)
    elif values.get("location") and not values.get("stations"):
        config_dict.pop("stations", None)

    config_dict.update(values)


def _format_validation_error(error: ValidationError) -> str:
    messages = []
    for item in error.errors():
        message = item["msg"].removeprefix("Value error, ")
        location = ".".join(str(part) for part in item["loc"])
        messages.append(f"{location}: {message}" if location else message)
    return "; ".join(messages)

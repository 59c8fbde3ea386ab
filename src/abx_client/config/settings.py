"""Configuration settings using Pydantic for validation."""

from typing import Optional, Any
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import os
import re

from ..exceptions import ConfigurationError


class ServerConfig(BaseModel):
    """ABX exchange server endpoint configuration."""
    host: str = Field(default="127.0.0.1", description="Exchange server host")
    port: int = Field(default=3000, description="Exchange server port")
    connect_timeout_seconds: float = Field(default=10.0, description="TCP connect timeout")
    receive_timeout_seconds: Optional[float] = Field(
        default=None, description="Per-frame receive timeout (None blocks until data or close)"
    )

    @field_validator('port')
    @classmethod
    def validate_port(cls, v):
        if not 0 < v < 65536:
            raise ValueError("Port must be between 1 and 65535")
        return v


class RecoveryConfig(BaseModel):
    """Gap recovery configuration."""
    max_concurrency: int = Field(
        default=1, description="Concurrent resend requests (1 = strictly sequential)"
    )

    @field_validator('max_concurrency')
    @classmethod
    def validate_concurrency(cls, v):
        if v < 1:
            raise ValueError("max_concurrency must be at least 1")
        return v


class RetryConfig(BaseModel):
    """Retry configuration for connection establishment."""
    max_attempts: int = Field(default=3, description="Maximum connect attempts")
    initial_backoff_seconds: float = Field(default=0.5, description="Initial backoff delay")
    max_backoff_seconds: float = Field(default=10.0, description="Maximum backoff delay")
    backoff_multiplier: float = Field(default=2.0, description="Backoff multiplier")
    jitter: bool = Field(default=True, description="Add jitter to backoff")


class OutputConfig(BaseModel):
    """Output sink configuration."""
    path: str = Field(default="output.json", description="Path of the JSON output file")
    indent: int = Field(default=4, description="JSON indentation")


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")
    output: str = Field(default="stdout", description="Log output destination")

    @field_validator('format')
    @classmethod
    def validate_format(cls, v):
        if v.lower() not in ['json', 'text']:
            raise ValueError("Log format must be 'json' or 'text'")
        return v.lower()


class ClientSettings(BaseSettings):
    """Main ABX client settings."""

    model_config = SettingsConfigDict(
        env_prefix="ABX_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    service_name: str = Field(default="abx-client", description="Service name")
    environment: str = Field(default="local", description="Environment: local, dev, prod")

    server: ServerConfig = Field(default_factory=ServerConfig)
    recovery: RecoveryConfig = Field(default_factory=RecoveryConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v):
        if v not in ['local', 'dev', 'prod']:
            raise ValueError("Environment must be 'local', 'dev', or 'prod'")
        return v


def substitute_env_vars(obj: Any) -> Any:
    """
    Recursively substitute environment variables in configuration objects.

    Supports syntax:
    - ${VAR_NAME} - Required variable (raises error if not found)
    - ${VAR_NAME:-default} - Optional variable with default value

    Raises:
        ConfigurationError: If a required environment variable is not set
    """
    if isinstance(obj, dict):
        return {key: substitute_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [substitute_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        def replace_env_var(match):
            var_expr = match.group(1)

            if ':-' in var_expr:
                var_name, default_value = var_expr.split(':-', 1)
                return os.getenv(var_name.strip(), default_value)
            else:
                var_name = var_expr.strip()
                value = os.getenv(var_name)
                if value is None:
                    raise ConfigurationError(
                        f"Required environment variable '{var_name}' is not set",
                        details={"variable": var_name},
                    )
                return value

        return re.sub(r'\$\{([^}]+)\}', replace_env_var, obj)
    else:
        return obj


def load_settings(config_file: Optional[str] = None) -> ClientSettings:
    """
    Load settings from a YAML config file and environment variables.

    Values from the config file are passed as init arguments, so they take
    precedence over ABX_* environment variables.

    Args:
        config_file: Path to YAML configuration file

    Returns:
        ClientSettings: Validated configuration object

    Raises:
        ConfigurationError: If the file is missing, unreadable or references unset variables
    """
    if config_file and os.path.exists(config_file):
        import yaml

        try:
            with open(config_file, 'r') as f:
                raw_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file {config_file}: {e}",
                details={"config_file": config_file},
            )

        config_data = substitute_env_vars(raw_config)
        return ClientSettings(**config_data)

    elif config_file:
        raise ConfigurationError(
            f"Configuration file not found: {config_file}",
            details={"config_file": config_file},
        )

    return ClientSettings()

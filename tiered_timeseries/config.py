import os
from typing import Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

# Load environment variables from .env file
load_dotenv()

# Identifiers per dispatch message
BATCH_SIZE = 2

# Backend write limits
TIMESERIES_CHUNK_SIZE = 100
FUTURE_CHUNK_SIZE = 25

# SQS SendMessageBatch accepts at most 10 entries
SQS_BATCH_LIMIT = 10

# Time store record shape
MEASURE_NAME = "cpu usage"
IDENTIFIER_DIMENSION = "identifier"

# Store client behaviour
CLIENT_MAX_ATTEMPTS = 10
CLIENT_TIMEOUT_SECONDS = 20


class ConfigurationError(Exception):
    """Raised when required settings are missing or invalid."""

    def __init__(
        self,
        missing: List[str],
        role: str = "service",
        reason: str = "Missing required configuration",
    ):
        self.missing = missing
        self.role = role
        super().__init__(f"{reason} for {role}: {', '.join(missing)}")


# ============================================================================
# Settings
# ============================================================================

# Field name -> environment variable
ENV_VARS: Dict[str, str] = {
    "aws_region": "AWS_REGION",
    "aws_endpoint_url": "AWS_ENDPOINT_URL",
    "ts_db_name": "TS_DB_NAME",
    "ts_table_name": "TS_TABLE_NAME",
    "future_table": "FUTURE_TABLE",
    "identifier_table": "IDENTIFIER_TABLE",
    "identifier_queue": "IDENTIFIER_QUEUE",
    "source_api_key": "SOURCE_API_KEY",
    "source_api_key_parameter": "SOURCE_API_KEY_SSM_ID",
    "security_token": "API_SECURITY_TOKEN",
    "security_token_parameter": "API_SECURITY_TOKEN_SSM_ID",
    "fetch_concurrency": "FETCH_CONCURRENCY",
    "future_ttl_days": "FUTURE_TTL_DAYS",
    "credential_ttl_seconds": "CREDENTIAL_TTL_SECONDS",
    "celery_broker_url": "CELERY_BROKER_URL",
}


class Settings(BaseModel):
    """
    Validated service configuration.

    Built once per process from the environment. Each process role
    (ingestion worker, dispatcher, API) checks the fields it needs with
    the matching ``require_*`` method before doing any I/O.
    """

    aws_region: str = Field("us-west-2", description="AWS region for all clients")
    aws_endpoint_url: Optional[str] = Field(
        None, description="Override endpoint (e.g. LocalStack)"
    )

    ts_db_name: Optional[str] = Field(None, description="Timestream database name")
    ts_table_name: Optional[str] = Field(None, description="Timestream table name")
    future_table: Optional[str] = Field(None, description="DynamoDB table for future samples")
    identifier_table: Optional[str] = Field(None, description="DynamoDB table of identifiers")
    identifier_queue: Optional[str] = Field(None, description="SQS queue URL for dispatch")

    source_api_key: Optional[str] = Field(None, description="Data source API key")
    source_api_key_parameter: Optional[str] = Field(
        None, description="SSM parameter holding the data source API key"
    )
    security_token: Optional[str] = Field(None, description="Shared secret for the HTTP API")
    security_token_parameter: Optional[str] = Field(
        None, description="SSM parameter holding the HTTP API shared secret"
    )

    fetch_concurrency: int = Field(1, ge=1, le=64)
    future_ttl_days: int = Field(7, ge=1)
    credential_ttl_seconds: Optional[int] = Field(None, ge=1)

    celery_broker_url: str = Field("sqs://")

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Empty strings are treated as unset.

        Args:
            environ: Mapping to read from (defaults to ``os.environ``)

        Returns:
            Settings instance
        """
        environ = os.environ if environ is None else environ
        values = {}
        for field_name, env_name in ENV_VARS.items():
            value = environ.get(env_name)
            if value:
                values[field_name] = value

        try:
            return cls(**values)
        except ValidationError as e:
            invalid = [
                ENV_VARS.get(str(error["loc"][0]), str(error["loc"][0]))
                for error in e.errors()
            ]
            raise ConfigurationError(
                invalid, role="settings", reason="Invalid configuration"
            ) from e

    def _check(self, role: str, fields: List[str]) -> None:
        missing = [ENV_VARS[name] for name in fields if not getattr(self, name)]
        if missing:
            raise ConfigurationError(missing, role=role)

    def require_ingestion(self) -> "Settings":
        """Check settings needed by the ingestion worker."""
        self._check("ingestion", ["ts_db_name", "ts_table_name", "future_table"])
        if not self.source_api_key and not self.source_api_key_parameter:
            raise ConfigurationError(
                [ENV_VARS["source_api_key"], ENV_VARS["source_api_key_parameter"]],
                role="ingestion",
            )
        return self

    def require_dispatch(self) -> "Settings":
        """Check settings needed by the identifier dispatcher."""
        self._check("dispatch", ["identifier_table", "identifier_queue"])
        return self

    def require_api(self) -> "Settings":
        """Check settings needed by the HTTP API."""
        self._check("api", ["ts_db_name", "ts_table_name", "future_table"])
        if not self.security_token and not self.security_token_parameter:
            raise ConfigurationError(
                [ENV_VARS["security_token"], ENV_VARS["security_token_parameter"]],
                role="api",
            )
        return self


# Cache for loaded settings
_settings_cache: Optional[Settings] = None


def get_settings(force_reload: bool = False) -> Settings:
    """
    Get process-wide settings, loading them from the environment once.

    Args:
        force_reload: If True, rebuild from the environment

    Returns:
        Settings instance
    """
    global _settings_cache

    if _settings_cache is None or force_reload:
        _settings_cache = Settings.from_env()
    return _settings_cache

"""Runtime settings loaded from the environment (and a local .env file)."""

import os
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from quote_sync.errors import ConfigError

REQUIRED_ENV = ("SIMPRO_API_URL", "SIMPRO_API_KEY", "HUBSPOT_ACCESS_TOKEN")


class Settings(BaseModel):
    """Credentials, endpoints and tuning knobs for both remote services."""

    simpro_url: str
    simpro_api_key: str
    hubspot_token: str
    hubspot_base_url: str = "https://api.hubapi.com"

    rate_limit_simpro: float = Field(default=2.0, gt=0, description="Requests per second")
    rate_limit_hubspot: float = Field(default=10.0, gt=0, description="Requests per second")
    max_retries: int = Field(default=3, ge=1)
    retry_delay: float = Field(default=5.0, ge=0)
    request_timeout: float = 30.0

    quote_hubspot_field_id: int = 229
    job_hubspot_field_id: int = 262
    placeholder_email_domain: str = "solarhub.com.au"

    hubspot_job_object: str = "p_jobs"
    hubspot_site_object: str = "p_sites"
    hubspot_job_pipeline_id: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, *, dotenv: bool = True) -> "Settings":
        """
        Build settings from environment variables.
        Loads .env first unless dotenv=False or an explicit mapping is given.
        Raises ConfigError naming every missing required variable.
        """
        if environ is None:
            if dotenv:
                load_dotenv()
            environ = os.environ

        missing = [name for name in REQUIRED_ENV if not (environ.get(name) or "").strip()]
        if missing:
            raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")

        data: dict = {
            "simpro_url": environ["SIMPRO_API_URL"].rstrip("/"),
            "simpro_api_key": environ["SIMPRO_API_KEY"],
            "hubspot_token": environ["HUBSPOT_ACCESS_TOKEN"],
        }
        optional = {
            "HUBSPOT_BASE_URL": "hubspot_base_url",
            "RATE_LIMIT_SIMPRO": "rate_limit_simpro",
            "RATE_LIMIT_HUBSPOT": "rate_limit_hubspot",
            "MAX_RETRIES": "max_retries",
            "RETRY_DELAY": "retry_delay",
            "REQUEST_TIMEOUT": "request_timeout",
            "QUOTE_HUBSPOT_FIELD_ID": "quote_hubspot_field_id",
            "JOB_HUBSPOT_FIELD_ID": "job_hubspot_field_id",
            "PLACEHOLDER_EMAIL_DOMAIN": "placeholder_email_domain",
            "HUBSPOT_JOB_OBJECT": "hubspot_job_object",
            "HUBSPOT_SITE_OBJECT": "hubspot_site_object",
            "HUBSPOT_JOB_PIPELINE_ID": "hubspot_job_pipeline_id",
        }
        for env_name, field in optional.items():
            value = (environ.get(env_name) or "").strip()
            if value:
                data[field] = value

        try:
            return cls.model_validate(data)
        except ValueError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

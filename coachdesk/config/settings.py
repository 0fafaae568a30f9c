"""
CoachDesk configuration.

Every setting is read from the environment (or a local .env file) by
pydantic-settings, so a wrong type fails at startup instead of on the
first request that needs it. Names map to upper-case variables:
`snowflake_mock_mode` is SNOWFLAKE_MOCK_MODE.

With both mock modes on, the API runs with no external accounts at all.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings(BaseSettings):
    """Process-wide settings. Lists are given as comma-separated strings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- HTTP surface ------------------------------------------------------
    api_title: str = "CoachDesk API"
    api_version: str = "v1"
    api_keys: str = Field(
        default="dev-key-1,dev-key-2",
        description="Keys accepted in X-API-Key, one per frontend. Old and new keys can overlap during rotation."
    )
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Origins allowed by CORS. '*' allows any origin and is meant for development."
    )
    log_level: str = Field(default="INFO", description="Root log level")

    # -- Snowflake ---------------------------------------------------------
    snowflake_mock_mode: bool = Field(
        default=False,
        description="Keep all records in process memory instead of Snowflake."
    )
    snowflake_account: str = Field(default="", description="Account identifier, e.g. xy12345.eu-west-1")
    snowflake_user: str = Field(default="", description="Service user the API connects as")
    snowflake_password: str = Field(default="", description="Password auth; ignored when a private key is set")
    snowflake_private_key_path: Optional[str] = Field(
        default=None,
        description="PEM file for key-pair auth"
    )
    snowflake_private_key_base64: Optional[str] = Field(
        default=None,
        description="Base64 of the PEM, for hosts where a key file can't be mounted"
    )
    snowflake_database: str = "COACHDESK"
    snowflake_schema: str = "COACHING"
    snowflake_warehouse: str = "COMPUTE_WH"
    snowflake_role: Optional[str] = None

    # -- Media storage (Cloudflare R2) ---------------------------------------
    r2_mock_mode: bool = Field(
        default=False,
        description="Issue mock:// upload URLs instead of presigning against R2."
    )
    r2_account_id: str = Field(default="", description="Used to build the endpoint when none is given")
    r2_access_key_id: str = ""
    r2_secret_access_key: str = ""
    r2_bucket_name: str = Field(default="coachdesk-media", description="Bucket holding all coach media")
    r2_endpoint_url: Optional[str] = Field(
        default=None,
        description="Full S3 endpoint; overrides the one derived from r2_account_id"
    )
    upload_url_expiry_seconds: int = Field(
        default=900,
        description="How long a presigned upload URL stays valid."
    )
    upload_max_bytes: int = Field(
        default=50 * 1024 * 1024,
        description="Largest file a client may announce when requesting an upload URL."
    )

    # -- Dashboard ---------------------------------------------------------
    recent_clients_limit: int = Field(
        default=5,
        description="How many recently started clients the dashboard lists."
    )

    @property
    def api_keys_list(self) -> list[str]:
        return _split_csv(self.api_keys)

    @property
    def cors_origins_list(self) -> list[str]:
        if self.cors_origins.strip() == "*":
            return ["*"]
        return _split_csv(self.cors_origins)

    @property
    def r2_endpoint(self) -> str:
        """Explicit endpoint if set, else https://{account_id}.r2.cloudflarestorage.com"""
        return self.r2_endpoint_url or f"https://{self.r2_account_id}.r2.cloudflarestorage.com"

    def validate_required_fields(self) -> list[str]:
        """
        Names of environment variables that must be set but aren't.

        What is required depends on the mock modes, which is why this isn't
        expressed as field validation. An empty list means the configuration
        is complete.
        """
        missing = []

        if not self.api_keys_list:
            missing.append("API_KEYS")

        if not self.snowflake_mock_mode:
            required = {
                "SNOWFLAKE_ACCOUNT": self.snowflake_account,
                "SNOWFLAKE_USER": self.snowflake_user,
                "SNOWFLAKE_PASSWORD or SNOWFLAKE_PRIVATE_KEY_PATH": (
                    self.snowflake_password
                    or self.snowflake_private_key_path
                    or self.snowflake_private_key_base64
                ),
            }
            missing.extend(name for name, value in required.items() if not value)

        if not self.r2_mock_mode:
            required = {
                "R2_ACCOUNT_ID": self.r2_account_id or self.r2_endpoint_url,
                "R2_ACCESS_KEY_ID": self.r2_access_key_id,
                "R2_SECRET_ACCESS_KEY": self.r2_secret_access_key,
            }
            missing.extend(name for name, value in required.items() if not value)

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Settings, loaded once per process.

    Tests either override this dependency or call get_settings.cache_clear().
    """
    return Settings()

import os
from typing import Literal

from pydantic import computed_field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Self


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # env_file will be set dynamically in get_settings()
        env_ignore_empty=True,
        extra="ignore",
    )

    ENVIRONMENT: Literal[
        "development", "testing", "staging", "production"
    ] = "development"

    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    AWS_DEFAULT_REGION: str = "us-east-1"
    DYNAMODB_ENDPOINT_URL: str | None = None

    CASBIN_TABLE_PREFIX: str = "casbin-rules"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def CASBIN_TABLE_NAME(self) -> str:
        return f"{self.CASBIN_TABLE_PREFIX}-{self.ENVIRONMENT}"

    # fan-out width for add_policies
    DYNAMODB_MAX_WORKERS: int = 8
    # submissions of a batch chunk while DynamoDB keeps returning UnprocessedItems
    DYNAMODB_BATCH_MAX_ATTEMPTS: int = 5
    DYNAMODB_CONNECT_TIMEOUT: float = 5.0
    DYNAMODB_READ_TIMEOUT: float = 10.0
    # botocore retry budget for a single request
    DYNAMODB_MAX_ATTEMPTS: int = 3

    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = os.path.join(os.path.dirname(os.path.dirname(__file__)), "logs")

    @model_validator(mode="after")
    def _check_positive_limits(self) -> Self:
        for name in (
            "DYNAMODB_MAX_WORKERS",
            "DYNAMODB_BATCH_MAX_ATTEMPTS",
            "DYNAMODB_MAX_ATTEMPTS",
        ):
            value = getattr(self, name)
            if value < 1:
                raise ValueError(f"{name} must be at least 1, got {value}")

        return self


def get_settings() -> Settings:
    """Get settings with appropriate env file based on ENVIRONMENT."""
    environment = os.getenv("ENVIRONMENT", "development")

    env_files = {"testing": ".env.test", "development": ".env"}
    env_file = env_files.get(environment, ".env")

    return Settings(_env_file=env_file)


settings = get_settings()

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "finance-api"
    environment: Literal["development", "production", "test"] = "production"
    database_url: str = "postgresql+asyncpg://postgres:postgres@db:5432/finance"
    auto_run_migrations: bool = True
    cors_origins: list[str] = ["*"]

    # Budget vs. actual matching
    report_category_case_insensitive: bool = False
    default_budget_period: str = "monthly"

    @field_validator("environment", mode="before")
    @classmethod
    def normalize_environment(cls, v: str | None) -> str:
        """Normalize environment names to lowercase, defaulting empty to 'production'."""
        if v is None or v == "":
            return "production"
        return v.lower()

    @field_validator("default_budget_period", mode="before")
    @classmethod
    def normalize_default_period(cls, v: str | None) -> str:
        if v is None or v == "":
            return "monthly"
        return v.strip().lower()

    def get_sync_database_url(self) -> str:
        """Return a synchronous driver URL for Alembic/CLI usage."""

        if "+asyncpg" in self.database_url:
            return self.database_url.replace("+asyncpg", "+psycopg")
        return self.database_url

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


class AppConfig(BaseModel):
    version: str = "0.1.0"
    description: str = (
        "Personal finance API: expenses, budgets and budget-vs-actual reports."
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()

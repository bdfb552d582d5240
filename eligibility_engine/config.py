"""
Configuration settings for the Benefits Eligibility Rules Engine
"""
from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # MongoDB Configuration
    mongodb_url: str = Field(default="mongodb://localhost:27017", description="MongoDB connection URL")
    mongodb_db_name: str = Field(default="eligibility_db", description="Database holding the rule catalogue")

    # Application Configuration
    app_name: str = Field(default="Benefits Eligibility Rules Engine")
    app_version: str = Field(default="1.0.0")
    log_level: str = Field(default="INFO")

    # Rule catalogue
    supported_jurisdictions: str = Field(
        default="IL,CA,NY,TX,FL",
        description="Comma-separated jurisdiction codes with provisioned rule sets"
    )
    rule_cache_ttl_minutes: int = Field(default=60, ge=1, description="Lifetime of cached rules")

    # Federal Poverty Level lookups
    fpl_min_year: int = Field(default=2000)
    fpl_max_year: int = Field(default=2100)

    def get_supported_jurisdictions_list(self) -> List[str]:
        """Get supported jurisdictions as a list of upper-case codes"""
        return [code.strip().upper() for code in self.supported_jurisdictions.split(',') if code.strip()]

    model_config = SettingsConfigDict(
        env_prefix="ELIGIBILITY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Create global settings instance
settings = Settings()

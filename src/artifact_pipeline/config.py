from typing import Optional

from pydantic_settings import BaseSettings

from artifact_pipeline import constants as CONSTANTS


class PipelineSettings(BaseSettings):
    # Artifact storage
    CONTAINER_NAME: str = CONSTANTS.ARTIFACT_CONTAINER_NAME
    SAS_EXPIRY_HOURS: int = CONSTANTS.DEFAULT_SAS_EXPIRY_HOURS
    RETENTION_DAYS: int = CONSTANTS.DEFAULT_RETENTION_DAYS
    UPLOAD_CONCURRENCY: int = CONSTANTS.DEFAULT_UPLOAD_CONCURRENCY

    # Function packaging
    # Empty means the system temp directory
    PACKAGE_OUTPUT_DIR: str = ""
    COMPRESSION_LEVEL: int = CONSTANTS.DEFAULT_COMPRESSION_LEVEL
    MINIFY: bool = False

    # Logging
    DEBUG: bool = False

    # Service principal (optional, falls back to DefaultAzureCredential)
    AZURE_TENANT_ID: Optional[str] = None
    AZURE_CLIENT_ID: Optional[str] = None
    AZURE_CLIENT_SECRET: Optional[str] = None

    class Config:
        env_prefix = "ARTIFACT_PIPELINE_"
        env_file = ".env"
        extra = "ignore"

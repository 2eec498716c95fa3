import os

from pydantic import BaseModel, Field, field_validator

DEFAULT_BLOCK_PREFIX = "annotations/blocks/{block_id}/"


class ApiConfig(BaseModel):
    table_name: str = "annotations"
    bucket_name: str = "annotations-app"
    block_prefix_template: str = DEFAULT_BLOCK_PREFIX
    region: str = "us-east-1"
    log_level: str = "INFO"
    batch_delete_max_attempts: int = Field(default=5, ge=1)
    batch_delete_backoff_ms: int = Field(default=100, ge=0)

    @field_validator("log_level")
    @classmethod
    def validate_level(cls, v):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    @field_validator("block_prefix_template")
    @classmethod
    def validate_prefix(cls, v):
        if "{block_id}" not in v:
            raise ValueError("Block prefix template must contain {block_id}")
        return v

    def block_prefix(self, block_id: str) -> str:
        return self.block_prefix_template.format(block_id=block_id)

    @classmethod
    def from_env(cls) -> "ApiConfig":
        return cls(
            table_name=os.environ.get("TABLE_NAME", "annotations"),
            bucket_name=os.environ.get("S3_BUCKET_NAME", "annotations-app"),
            block_prefix_template=os.environ.get(
                "S3_BLOCK_PREFIX", DEFAULT_BLOCK_PREFIX
            ),
            region=os.environ.get("AWS_REGION", "us-east-1"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            batch_delete_max_attempts=int(
                os.environ.get("BATCH_DELETE_MAX_ATTEMPTS", "5")
            ),
            batch_delete_backoff_ms=int(os.environ.get("BATCH_DELETE_BACKOFF_MS", "100")),
        )

"""Pydantic models for verification options and the config file schema."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_TIMEOUT = 60.0
DEFAULT_TERRAFORM_DIR = "deployments/terraform/environments"
DEFAULT_ENVIRONMENT = "development"

# Config keys read by VerificationOptions.from_config
KEY_ENVIRONMENT = "TF_ENV"
KEY_SERVICE_SUFFIX = "SERVICE_SUFFIX"
KEY_TIMEOUT = "VERIFY_TIMEOUT"
KEY_TERRAFORM_DIR = "TERRAFORM_ENV_DIR"


class VerificationOptions(BaseModel):
    """Immutable options for a single verification run."""

    model_config = ConfigDict(frozen=True)

    environment: str = Field(DEFAULT_ENVIRONMENT, description="Environment name")
    skip_plan: bool = Field(False, description="Skip the terraform plan tie-break")
    ignore_resource_errors: bool = Field(
        False, description="Treat not-found AWS resources as zero"
    )
    timeout: float = Field(DEFAULT_TIMEOUT, gt=0, description="Run deadline in seconds")
    service_suffix: str = Field("", description="Suffix of parallel service deployments")
    terraform_dir: str = Field(
        DEFAULT_TERRAFORM_DIR, description="Directory holding one subdirectory per environment"
    )
    state_file: Optional[str] = Field(
        None, description="Read declared state from this JSON file instead of terraform"
    )
    log_level: str = Field("info", description="Log level name")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment name."""
        v = v.strip()
        if not v:
            raise ValueError("Environment name cannot be empty")
        if "/" in v or "\\" in v:
            raise ValueError(f"Environment name must not contain path separators: {v}")
        return v

    @classmethod
    def from_config(cls, provider, **overrides) -> "VerificationOptions":
        """Build options from a ConfigProvider, letting explicit values win.

        Args:
            provider: ConfigProvider to read defaults from
            **overrides: Field values that take precedence; None values are ignored

        Returns:
            Validated VerificationOptions
        """
        values = {
            "environment": provider.get_with_default(KEY_ENVIRONMENT, DEFAULT_ENVIRONMENT),
            "service_suffix": provider.get_with_default(KEY_SERVICE_SUFFIX, ""),
            "timeout": provider.get_with_default(KEY_TIMEOUT, str(DEFAULT_TIMEOUT)),
            "terraform_dir": provider.get_with_default(KEY_TERRAFORM_DIR, DEFAULT_TERRAFORM_DIR),
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)


class FileSettings(BaseModel):
    """Schema of the optional tfverify.yaml file."""

    model_config = ConfigDict(extra="forbid")

    environment: Optional[str] = Field(None, description="Default environment (TF_ENV)")
    service_suffix: Optional[str] = Field(None, description="Default suffix (SERVICE_SUFFIX)")
    timeout: Optional[float] = Field(None, gt=0, description="Default timeout (VERIFY_TIMEOUT)")
    terraform_dir: Optional[str] = Field(None, description="Environment root (TERRAFORM_ENV_DIR)")
    aws_region: Optional[str] = Field(None, description="AWS region (AWS_REGION)")
    aws_profile: Optional[str] = Field(None, description="AWS profile (AWS_PROFILE)")

    def to_config_values(self):
        """Map set fields to their config keys."""
        keys = {
            "environment": KEY_ENVIRONMENT,
            "service_suffix": KEY_SERVICE_SUFFIX,
            "timeout": KEY_TIMEOUT,
            "terraform_dir": KEY_TERRAFORM_DIR,
            "aws_region": "AWS_REGION",
            "aws_profile": "AWS_PROFILE",
        }
        return {
            keys[name]: str(value)
            for name, value in self.model_dump().items()
            if value is not None
        }

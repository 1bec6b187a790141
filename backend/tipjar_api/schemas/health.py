"""Health check schemas."""

from pydantic import Field

from tipjar_common.utils.json_model import JsonModel


class HealthCheckResponse(JsonModel):
    """Health check response."""

    status: str = Field(..., description="Service health status")
    service: str = Field(..., description="Service name")
    environment: str = Field(..., description="Environment name")
    is_testing: bool = Field(..., description="Whether in testing mode")
    database_type: str = Field(..., description="Database type (sqlite/postgresql)")
    processor_configured: bool = Field(..., description="Whether payment processor keys are configured")

"""Common Pydantic schemas used across the API."""

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


class HealthResponse(BaseSchema):
    """Health probe response schema."""

    status: str

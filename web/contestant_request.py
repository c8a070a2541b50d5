from pydantic import BaseModel, field_validator


class ContestantCreateRequest(BaseModel):
    """Request model for adding a contestant to the roster."""

    name: str
    nationality: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        """Reject blank names."""
        if not v.strip():
            raise ValueError("Contestant name is required")
        return v.strip()


class NationalityUpdateRequest(BaseModel):
    """Request model for changing a contestant's nationality."""

    nationality: str | None = None

"""Authentication schemas"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    """Schema for the login request.

    The secret length is checked by the session store, not here, so that a
    malformed secret yields a 400 with a readable message rather than a 422.
    """

    npsso: str = Field(
        "", description="NPSSO session cookie value (64 characters)"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "npsso": "a" * 64,
            }
        }
    )


class AuthStatusResponse(BaseModel):
    """Response schema for the session status check"""

    authenticated: bool = Field(
        ..., description="Whether the supplied secret yields a valid credential"
    )
    has_npsso: bool = Field(
        ..., alias="hasNpsso", description="Whether a secret was supplied or configured"
    )

    model_config = ConfigDict(populate_by_name=True)


class SuccessResponse(BaseModel):
    """Standard success response"""

    success: bool = True


class ErrorResponse(BaseModel):
    """Standard error response"""

    error: str
    code: Optional[str] = None

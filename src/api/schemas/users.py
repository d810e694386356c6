"""Request and response models of the users resource."""

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class NewUser(BaseModel):
    """Payload of ``POST /api/v1/users``."""

    email: EmailStr = Field(..., description="Email address", examples=["a@example.com"])
    name: str | None = Field(
        default=None,
        min_length=1,
        max_length=100,
        description="Optional display name",
        examples=["Ada"],
    )


class UserOut(BaseModel):
    """A stored user."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="UUID4 identifier")
    email: str
    name: str | None = None


class UserList(BaseModel):
    """Envelope of ``GET /api/v1/users``."""

    data: list[UserOut]

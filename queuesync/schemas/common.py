"""Common schemas shared by the wire models."""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BaseSchema(BaseModel):
    """Base schema for server payloads.

    Wire payloads are camelCase; fields are snake_case with aliases, and
    either spelling is accepted on input.
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        frozen=True,
        extra="ignore",
    )


class ErrorBody(BaseModel):
    """Structured error body returned by every command endpoint."""

    model_config = ConfigDict(extra="ignore")

    error: str = Field(..., description="Human-readable error message")


class CommandResult(BaseSchema):
    """Successful command response."""

    success: bool = True
    message: str = "Operation completed successfully"
    added_players: int | None = Field(default=None, alias="addedPlayers")


class LaunchResult(CommandResult):
    """Successful launch response; carries the created match."""

    match_id: str = Field(..., alias="matchId")

    @field_validator("match_id", mode="before")
    @classmethod
    def stringify_match_id(cls, v: object) -> object:
        return str(v) if isinstance(v, int) else v

"""Models for the access token lifecycle."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CachedToken(BaseModel):
    """Last-known token and expiry for a credential (epoch seconds)."""

    token: str
    expires_at: float
    last_checked_at: float


class TokenStatus(BaseModel):
    """Derived view of a token; computed on every check, never stored."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    token: str
    is_expired: bool
    needs_refresh: bool
    expires_at: float
    days_until_expiry: int


class TokenRefreshResult(BaseModel):
    """Outcome of a forced refresh."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    new_token: str
    message: str


class TokenIntrospectionData(BaseModel):
    """The `data` object returned by the debug_token endpoint."""

    model_config = ConfigDict(extra="allow")

    is_valid: bool | None = None
    expires_at: int | None = None
    app_id: str | None = None
    type: str | None = None
    scopes: list[str] = Field(default_factory=list)


class TokenIntrospection(BaseModel):
    """Body of a debug_token response."""

    model_config = ConfigDict(extra="allow")

    data: TokenIntrospectionData


class RefreshedToken(BaseModel):
    """Body of a refresh_access_token response."""

    model_config = ConfigDict(extra="allow")

    access_token: str = Field(..., min_length=1)
    token_type: str | None = None
    expires_in: int = 0

"""
Data models for payloads exchanged with the desktop app.

Outbound models (Activity and its parts) are serialized with
``model_dump(exclude_none=True)``. Inbound models accept extra keys so
that fields added by newer app versions are preserved.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from discordrpc.ipc.protocol import ActivityType


class ActivityTimestamps(BaseModel):
    """Activity timestamps (epoch milliseconds)."""

    start: int | None = None
    end: int | None = None


class ActivityAssets(BaseModel):
    """Image assets for an activity."""

    large_image: str | None = None
    large_text: str | None = None
    large_url: str | None = None
    small_image: str | None = None
    small_text: str | None = None
    small_url: str | None = None


class ActivityParty(BaseModel):
    """Party information; ``size`` is ``[current, max]``."""

    id: str | None = None
    size: tuple[int, int] | None = None


class ActivitySecrets(BaseModel):
    """Secrets for activity invites."""

    join: str | None = None
    spectate: str | None = None
    match: str | None = None


class ActivityButton(BaseModel):
    """Button displayed on the activity."""

    label: str
    url: str


class Activity(BaseModel):
    """Rich Presence activity payload."""

    type: ActivityType | None = None
    state: str | None = None
    state_url: str | None = None
    details: str | None = None
    details_url: str | None = None
    timestamps: ActivityTimestamps | None = None
    assets: ActivityAssets | None = None
    party: ActivityParty | None = None
    secrets: ActivitySecrets | None = None
    instance: bool | None = None
    buttons: list[ActivityButton] | None = None

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the wire representation."""
        return self.model_dump(mode="json", exclude_none=True)


class User(BaseModel):
    """Discord user object."""

    model_config = ConfigDict(extra="allow")

    id: str
    username: str = ""
    discriminator: str = "0"
    global_name: str | None = None
    avatar: str | None = None
    bot: bool = False
    flags: int | None = None
    premium_type: int | None = None


class DiscordConfig(BaseModel):
    """App configuration received with READY."""

    model_config = ConfigDict(extra="allow")

    cdn_host: str = ""
    api_endpoint: str = ""
    environment: str = ""


class ReadyData(BaseModel):
    """Data delivered with the READY event."""

    model_config = ConfigDict(extra="allow")

    v: int = 1
    config: DiscordConfig = Field(default_factory=DiscordConfig)
    user: User | None = None


class AuthorizeResponse(BaseModel):
    """Response of the AUTHORIZE command."""

    model_config = ConfigDict(extra="allow")

    code: str


class Application(BaseModel):
    """Application info returned by AUTHENTICATE."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: str = ""
    icon: str | None = None
    description: str = ""
    rpc_origins: list[str] = Field(default_factory=list)


class AuthenticateResponse(BaseModel):
    """Response of the AUTHENTICATE command."""

    model_config = ConfigDict(extra="allow")

    application: Application
    user: User
    scopes: list[str] = Field(default_factory=list)
    expires: str = ""


class TokenExchangeResponse(BaseModel):
    """Response of the OAuth2 token endpoint."""

    model_config = ConfigDict(extra="allow")

    access_token: str
    token_type: str
    scope: str = ""
    expires_in: int | None = None
    refresh_token: str | None = None

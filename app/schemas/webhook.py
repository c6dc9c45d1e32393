"""Pydantic schemas for the Discord webhook relay."""

from __future__ import annotations

from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field


class DiscordEmbedField(BaseModel):
    name: str
    value: str
    inline: bool | None = None


class DiscordEmbed(BaseModel):
    """Subset of the Discord embed object accepted by the relay."""

    model_config = ConfigDict(extra="allow")

    title: str | None = None
    description: str | None = None
    color: int | None = None
    fields: List[DiscordEmbedField] | None = None
    timestamp: str | None = None
    footer: dict[str, Any] | None = None


class WebhookSendRequest(BaseModel):
    """Message to relay; at least one of content or embeds is required."""

    content: str | None = Field(default=None, description="Plain message text.")
    embeds: List[DiscordEmbed] | None = Field(default=None, description="Rich embeds.")
    username: str | None = Field(default=None, description="Override the webhook username.")
    avatar_url: str | None = Field(default=None, description="Override the webhook avatar.")

    def to_payload(self) -> dict[str, Any]:
        """Discord JSON payload without unset fields."""
        return self.model_dump(exclude_none=True)

    def embed_descriptions(self) -> list[str]:
        """Non-empty embed descriptions, in order; these are spam-screened."""
        return [embed.description for embed in self.embeds or [] if embed.description]


class WebhookSendResponse(BaseModel):
    success: bool = True
    message: str


class WebhookStatusResponse(BaseModel):
    success: bool = True
    message: str = "Discord webhook API is operational"
    configured: bool

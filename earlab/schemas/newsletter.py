"""Pydantic schemas for newsletter endpoints."""

from __future__ import annotations

from pydantic import BaseModel, EmailStr, Field


class SubscribeRequestBody(BaseModel):
    """Newsletter subscription form."""

    email: EmailStr = Field(..., description="Address to subscribe.")
    name: str | None = Field(default=None, min_length=2, max_length=100)
    role: str | None = Field(default=None, max_length=100)
    company: str | None = Field(default=None, max_length=100)
    source: str | None = Field(
        default=None,
        max_length=50,
        description="Where the form was submitted from (defaults to 'website').",
    )


class UnsubscribeRequestBody(BaseModel):
    email: EmailStr


class SubscribeData(BaseModel):
    requires_verification: bool = Field(
        ..., description="True when a verification email was sent."
    )


class SubscribeResponse(BaseModel):
    success: bool = True
    message: str
    data: SubscribeData


class MessageResponse(BaseModel):
    success: bool = True
    message: str

"""Pydantic schemas for the contact form endpoint."""

from __future__ import annotations

from pydantic import BaseModel, EmailStr, Field, HttpUrl


class ContactRequestBody(BaseModel):
    """Contact form submitted from the public site."""

    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    company: str | None = Field(default=None, max_length=100)
    project_description: str = Field(
        ...,
        min_length=10,
        max_length=2000,
        description="What the visitor wants to build or discuss.",
    )
    budget_range: str | None = Field(default=None, max_length=100)
    timeline: str | None = Field(default=None, max_length=100)
    file_url: HttpUrl | None = Field(
        default=None,
        description="Optional link to an attachment hosted elsewhere.",
    )


class ContactData(BaseModel):
    contact_id: str


class ContactResponse(BaseModel):
    success: bool = True
    message: str
    data: ContactData

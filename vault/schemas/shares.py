"""Pydantic schemas for share link endpoints."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class CreateShareLinkRequest(BaseModel):
    """Request model for creating a share link."""
    emails: List[str] = Field(default_factory=list)
    permission: str = "view"
    expires_at: Optional[datetime] = None
    password: Optional[str] = None


class CreateShareLinkResponse(BaseModel):
    """Response model for share link creation."""
    token: str
    share_url: str


class AccessShareRequest(BaseModel):
    """Credentials presented by a share link visitor."""
    password: Optional[str] = None
    email: Optional[str] = None


class SharedFileResponse(BaseModel):
    """What a share link visitor learns about the shared file."""
    file_id: str
    name: str
    mime_type: str
    size: int
    permission: str
    expires_at: Optional[str] = None

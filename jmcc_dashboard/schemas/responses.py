"""
API request and response schemas for the JMCC dashboard.

This module defines the Pydantic models for API bodies that are not journey records.
"""
from typing import Optional
from pydantic import BaseModel, Field

class LoginRequest(BaseModel):
    """Request body for the /login endpoint."""
    username: str = Field(..., description="Login name from sec_login")
    password: str = Field(..., description="Plain text password, checked against the stored hash")

class LoginResponse(BaseModel):
    """Response model for the /login endpoint."""
    message: str
    token: str

class EmailRequest(BaseModel):
    """Request body for the /sendEmail endpoint."""
    message: Optional[str] = Field(None, description="Plain text message body")

class MessageResponse(BaseModel):
    """Generic acknowledgement returned by the write endpoints."""
    message: str = Field(..., description="Human readable outcome")

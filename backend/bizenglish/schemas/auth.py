"""
Pydantic schemas for authentication endpoints.
Defines request/response models for registration, login and user information.
"""
from pydantic import BaseModel
from typing import Literal, Optional

class LoginRequest(BaseModel):
    """
    Request model for user login endpoint.
    """
    username: str  # User login name
    password: str  # Plain text, verified against the stored hash

class RegisterIn(BaseModel):
    username: str
    email: Optional[str] = None
    password: str
    skillLevel: Literal["A1", "A2", "B1", "B2", "C1", "C2"] = "B1"

class UserOut(BaseModel):
    """
    User information returned in authentication responses.
    Contains basic user details without sensitive information.
    """
    id: str
    username: str
    email: Optional[str] = None
    skillLevel: str = "B1"

"""
Request bodies for the auth and users endpoints.

Fields stay loosely typed so that missing or malformed values reach the
service, which answers with the messages clients display.
"""

from typing import Optional

from lms.common.schemas import CamelModel


class RegisterRequest(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None
    phone: Optional[str] = None


class LoginRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


class RefreshRequest(CamelModel):
    refresh_token: Optional[str] = None


class UserCreateRequest(RegisterRequest):
    pass


class UserUpdateRequest(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None
    phone: Optional[str] = None

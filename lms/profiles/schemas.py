"""
Request body for profile updates.
"""

from typing import Any, Optional

from lms.common.schemas import CamelModel


class ProfileUpdateRequest(CamelModel):
    is_student: Optional[Any] = None
    full_name4: Optional[Any] = None
    country: Optional[str] = None
    city: Optional[str] = None
    nationality: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    skills: Optional[Any] = None
    interests: Optional[Any] = None
    experience_level: Optional[str] = None
    current_status: Optional[str] = None
    portfolio_links: Optional[Any] = None
    heard_from: Optional[str] = None
    heard_from_details: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    university: Optional[str] = None
    major: Optional[str] = None
    education_level: Optional[str] = None
    graduation_year: Optional[Any] = None

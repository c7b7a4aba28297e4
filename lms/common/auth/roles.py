"""User roles understood by the authorization layer."""

import enum


class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    INSTRUCTOR = "INSTRUCTOR"
    STUDENT = "STUDENT"


STAFF_ROLES = (UserRole.ADMIN, UserRole.INSTRUCTOR)

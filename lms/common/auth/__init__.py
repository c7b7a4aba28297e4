"""
Authentication and role-based access control.
"""

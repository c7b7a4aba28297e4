"""
Profiles Module

Extended user profiles and autocomplete suggestions for their fields.
"""

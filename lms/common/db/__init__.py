"""
Database access: engine settings, request sessions and repositories.
"""

"""
Users, registration and login.
"""

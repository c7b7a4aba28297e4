"""
Declarative base, model registry and database lifecycle.
"""

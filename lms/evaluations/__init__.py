"""
Per-session PRE/POST quiz evaluations and their CSV exports.
"""

"""
Assignments, their resources, student submissions and reviews.
"""

"""
Courses, class sessions, enrollments and attendance.
"""

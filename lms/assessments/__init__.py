"""
Quizzes and exams with their shared grading rules.
"""

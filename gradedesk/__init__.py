"""
gradedesk: enrollment and grade-entry coordinator for a student/course
administration backend.

Resolves student and course numbers against the REST backend, holds the
selected student, course and semester, and drives enrollment and score entry
requests, re-rendering the grade list after every change.
"""

__version__ = "1.0.0"
__author__ = "gradedesk Development Team"
__description__ = "Enrollment and grade-entry coordinator"

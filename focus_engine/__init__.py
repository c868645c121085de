"""
Adaptive delivery and scoring engine for timed, sectioned mock exams.
"""

__version__ = "0.1.0"

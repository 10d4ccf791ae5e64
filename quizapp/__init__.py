# quizapp/__init__.py
"""
Quiz App

A FastAPI service that serves a multiple-choice question set, scores
submissions server-side and stores the results, plus an async client
that locates a live server among several candidate hosts.
"""

__version__ = "1.0.0"

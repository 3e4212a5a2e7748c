"""
Core business logic for the assessment backend.
"""

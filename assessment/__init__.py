"""
Competency assessment backend.
"""

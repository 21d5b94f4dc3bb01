"""
Utilities Package

Helper functions used across the application:
- timeutils.py: UTC clock, timezone normalisation and month arithmetic
"""

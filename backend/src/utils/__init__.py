"""
Utility modules for the scheduling engine.

This package contains shared helpers used across the application, including
datetime and timezone utilities and half-open interval math on time-of-day
strings.
"""

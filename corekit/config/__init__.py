"""
Configuration loading and validation for corekit settings.

Provides strongly typed settings objects for cache defaults and logging,
loaded from environment variables with upfront validation.
"""

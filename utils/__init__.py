"""
Utility modules for the Draft Assistant

Logging, rate limiting, decorators and pick-order helpers.
"""

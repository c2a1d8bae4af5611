"""
FITCOUNT Core

Application-wide configuration.
"""

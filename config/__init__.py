"""
Configuration package for the Lake Site Review Report.

This package contains configuration loading and validation.

Modules:
    config_loader: Load and validate report configuration from JSON
"""

__version__ = '1.0.0'

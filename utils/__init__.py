"""
Utility modules for the Lake Site Review Report.

This package contains utility functions and helpers used throughout the application.

Modules:
    logger: Logging configuration and setup
    legend: Categorical and continuous colour legends
    vocabulary: Depositional environment normalization
    basemap_helpers: Basemap tile layers
    html_generators: Popup and side panel HTML
    popup_formatters: Popup value formatting utilities
    xlsx_generator: Excel workbook of reviewed sites
"""

__version__ = '1.0.0'

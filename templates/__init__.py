"""
HTML templates for the Lake Site Review Report.

This package contains Jinja2 templates for the report page and map UI elements.

Templates:
    report.html: Narrative report page embedding the map and linking exports
    side_panel.html: Map side panel with field legends and headline counts
"""

__version__ = '1.0.0'

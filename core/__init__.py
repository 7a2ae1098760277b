"""
Core modules for the Lake Site Review Report.

This package contains the main functional modules of the report pipeline.

Modules:
    neotoma_query: Fetch pollen datasets and chronological controls
    chronology: Summarize chronological controls per dataset
    hydrography_matcher: Overlay sites on CanVec/NHD lake polygons
    match_loader: Load overlay outputs and join the edit table
    edit_codes: Review outcome vocabulary
    change_detector: Displacement, area delta and summary counts
    map_builder: Generate interactive Leaflet maps
    output_generator: Build exports and write versioned artifacts
"""

__version__ = '1.0.0'

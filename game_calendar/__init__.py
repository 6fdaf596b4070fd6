"""
Game Calendar: limited-time activity ingestion and normalization.

Fetches announcement data from six game-publisher backends, extracts
activity windows, and normalizes everything into ``CalendarEvent`` records
with explicit UTC offsets.
"""

__version__ = "0.1.0"

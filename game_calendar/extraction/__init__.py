"""
Extraction helpers: turning announcement HTML into titles, images and windows.

Submodules:
  html        : strip_html, title keys, first image, line tokenizer
  time_range  : extract_time_range over explicit ranges, keywords and bare dates
  matcher     : fuzzy activity ↔ content-record matching
  version     : version-notice picking and "X.Y" labels
"""

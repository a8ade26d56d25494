"""
Core functionality for the outline bridge.

This package contains the conversion engine:
- Placeholder vault for code, links, embeds and callouts
- Inline entity parsing and per-dialect printing
- Block structure parsing and rendering
- Table transpiling between pipe tables and chained bullets
- HTML sanitizing
- Configuration management and debug logging
"""

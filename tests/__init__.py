"""
Test suite for the outline bridge.

This package contains tests for all core functionality including:
- Placeholder vault protection and restore
- Inline entity parsing and printing
- Block structure parsing
- Table transpiling
- HTML sanitizing
- End-to-end conversions
- Configuration management, debug logging and the CLI
"""

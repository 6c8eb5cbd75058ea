# ragstore_chat/__init__.py
"""
Main source package for the Gemini document store chat application.

This package contains the session orchestration core, the Gemini File
Search gateway adapter, configuration, and utilities.
"""

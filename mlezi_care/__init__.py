"""
MleziCare - a wellness companion service.

This package provides a login-gated dashboard with a mood tracker, a chat with
an LLM-backed companion, a journal prompt generator and a set of self-care tool
panels, served over HTTP with Server-Sent Events for live dashboard updates.
"""

__version__ = "0.1.0"

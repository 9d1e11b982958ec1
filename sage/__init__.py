"""
Sage - conversational assistant with tool calling and provider fallback.
"""
__version__ = "1.0.0"

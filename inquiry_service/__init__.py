"""
Inquiry Service - business inquiry capture and admin triage API.
"""
__version__ = "1.0.0"

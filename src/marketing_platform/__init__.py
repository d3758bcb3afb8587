"""
Multi-tenant marketing automation: event ingestion and workflow triggering.
"""

__version__ = "0.1.0"

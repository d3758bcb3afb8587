"""
Provider webhook ingestion.
"""

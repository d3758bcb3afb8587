"""
Shared infrastructure: database sessions, logging, exceptions.
"""

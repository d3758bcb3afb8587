"""
Outbound campaign messages and their delivery status.
"""

"""
Suppression list and auto-suppression rules.
"""

"""
Platform phone numbers and their tenant assignment.
"""

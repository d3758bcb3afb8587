"""
SMS keywords and keyword activity log.
"""

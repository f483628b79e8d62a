"""
API v1 for AyuTrace.
"""

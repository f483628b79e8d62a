"""
AyuTrace REST request layer.
"""

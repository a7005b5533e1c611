"""
Instagram Clone - Recommendation Service
"""
__version__ = "1.0.0"

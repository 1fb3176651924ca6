"""
Command-line interface for wirehttp.
"""

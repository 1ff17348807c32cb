"""
HTTP API for hemisphere graphs.
"""

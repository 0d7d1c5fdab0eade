"""
Static bearer-token guard for upload endpoints.
"""

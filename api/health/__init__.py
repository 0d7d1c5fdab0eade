"""
Service and backend health endpoints.
"""

"""
Upload ingestion, storage backends and retrieval endpoints.
"""

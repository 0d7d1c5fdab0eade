"""
Shared, cross-cutting code for the API.

`core/` should contain small building blocks that multiple features use
(DB wiring, settings, logging, retries). Keep feature-specific SQL and storage
logic in the corresponding feature package (e.g. `uploads/`).
"""

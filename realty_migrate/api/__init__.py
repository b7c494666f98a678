"""HTTP API for running and monitoring migrations."""

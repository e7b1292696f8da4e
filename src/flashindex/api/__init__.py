"""HTTP surface: FastAPI app, response schemas and read-only views."""

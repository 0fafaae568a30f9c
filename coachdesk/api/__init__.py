"""HTTP layer: FastAPI dependencies, shared schemas and route modules."""

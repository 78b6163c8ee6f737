"""Request/response schemas — Pydantic models at the API boundary."""

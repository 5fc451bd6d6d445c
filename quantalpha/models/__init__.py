# =============================================================================
# Models Package — Pydantic V2 Schemas
# =============================================================================
# Request/response schemas for the API, kept separate from the domain
# dataclasses so internal fields (such as API keys) never leak out.
# =============================================================================

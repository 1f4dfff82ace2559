# =============================================================================
# Models Package — Pydantic V2 Schemas
# =============================================================================
# Defines request/response schemas for the API.
# These are SEPARATE from the database models (app/db/models.py): the API
# contract is camelCase JSON, the ORM model is snake_case columns.
# =============================================================================

# =============================================================================
# ChatMosaic
# =============================================================================
# A small chat backend: questions go to a hosted generative-language model,
# answers are rendered to sanitized HTML and stored as "exchanges" that can
# be listed, annotated, searched, analysed and exported.
#
# Package structure:
#   app/
#   ├── api/          → FastAPI route handlers, middleware, error handlers
#   ├── db/           → Database engine, session, and ORM models
#   ├── models/       → Pydantic V2 request/response schemas
#   └── services/     → Business logic (LLM providers, formatting, content
#                        filtering, exchange queries, error classification)
# =============================================================================

# =============================================================================
# Services Package — Business Logic
# =============================================================================
# Contains the core business logic, separated from API handlers:
#   - llm.py: Multi-provider LLM abstraction (Gemini, Anthropic, OpenAI-compatible)
#   - chat.py: Ask the provider and format the answer
#   - formatter.py: Markdown → sanitized HTML with code highlighting
#   - content_filter.py: Question normalisation and blocked patterns
#   - exchanges.py: Exchange persistence, search, analytics, export
#   - errors.py: Typed errors and provider error classification
# =============================================================================

# =============================================================================
# API Package — FastAPI Route Handlers
# =============================================================================
# Each module defines a FastAPI APIRouter (mounted under /api):
#   - chat.py: Exchange create/list/get/update/delete
#   - insights.py: Search, analytics and export
#   - health.py: Liveness + database probe
# Plus shared plumbing:
#   - deps.py: Dependency injection helpers
#   - errors.py: JSON error envelope handlers
#   - request_log.py: Request logging middleware
# =============================================================================

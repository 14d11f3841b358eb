# =============================================================================
# API Package — FastAPI Route Handlers
# =============================================================================
# Each module defines a FastAPI APIRouter for a specific feature:
#   - documents.py: Document upload, listing and FAQ candidates
#   - simulations.py: Session creation, start, status and control actions
#   - sessions.py: Session history and transcript export
#   - deps.py: Store / registry dependencies read from app.state
# =============================================================================

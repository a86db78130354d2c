# =============================================================================
# API Package — FastAPI Route Handlers
# =============================================================================
#   - keys.py: issue and revoke account management API keys (admin only)
#   - deps.py: admin token gate, per-request service wiring, Bearer key auth
# =============================================================================

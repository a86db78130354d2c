# =============================================================================
# Services Package — Business Logic
# =============================================================================
# Key lifecycle logic, separated from API handlers:
#   - keygen.py: random key generation and digest hashing
#   - expiration.py: duration parsing and expiry resolution
#   - keystore.py: KeyStore protocol (SQL and in-memory implementations)
#   - directory.py: email / id → user id lookups
#   - key_service.py: issue / resolve / revoke orchestration
#   - errors.py: exception taxonomy shared by all of the above
# =============================================================================

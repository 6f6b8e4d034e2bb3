"""
hrms_auth.auth

Authentication/authorization domain package.

Responsibilities:
- Identity, role and transient flow models.
- Error taxonomy, trust-window rules and the permission evaluator.
- Pydantic schemas for the auth API's non-identity responses.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Nothing in this package performs I/O; flows and the API client live elsewhere.

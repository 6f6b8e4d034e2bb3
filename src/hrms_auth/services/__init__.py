"""
hrms_auth.services

Service-layer package.

Responsibilities:
- Compose the store, the API client and the flows (`auth_service.AuthService`).
- Own the session lifecycle (startup recheck, logout, refresh).
- Authenticated account changes (`account_service.AccountService`).
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services should be pure Python and easily testable with fake clients and a temp database.

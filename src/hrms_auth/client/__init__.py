"""
hrms_auth.client

Auth API client package.

Responsibilities:
- Provide the client interface for the backend authentication API.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Flows depend on this boundary (not on httpx directly) so tests can substitute stubs.

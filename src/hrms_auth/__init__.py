"""
hrms_auth

Top-level package for the HRMS authentication and session-control core.

Responsibilities:
- Expose package version metadata.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"


# --- Module Notes -----------------------------------------------------------
# Keep this file minimal; consumers import `hrms_auth.services.auth_service` for wiring.

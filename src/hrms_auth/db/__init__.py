"""
hrms_auth.db

Persistence package (SQLAlchemy async).

Responsibilities:
- Provide the local storage model, engine/session setup, and the storage repository.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Any SQLAlchemy async URL works; the default is a SQLite file next to the host app.

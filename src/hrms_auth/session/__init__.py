"""
hrms_auth.session

Session package.

Responsibilities:
- Own the current identity and its durable copy (`session.store`).
"""

# Package marker.

"""
hrms_auth.observability

Observability package.

Responsibilities:
- Structured logging configuration.
- Request context propagation for outgoing auth API calls.
- Presentation effects (user-facing notices) derived from flow results.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Flows never call into this package for UI side effects; the host app wires a Notifier.

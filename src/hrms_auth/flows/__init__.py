"""
hrms_auth.flows

Client-owned state machines.

Responsibilities:
- Credential flow (login + 2FA setup/verification).
- Password reset flow (independent of the session store).
- Impersonation overlay.
"""

# Package marker; flows are imported directly from submodules.


# --- Module Notes -----------------------------------------------------------
# Every operation returns a `flows.results.FlowResult`; presentation effects are derived
# from it by `observability.notifications`, never emitted from inside a flow.

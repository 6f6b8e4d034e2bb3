"""
tests.test_impersonation

Impersonation overlay: employer-only, no stacking, memory-only substitute.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from hrms_auth.auth.errors import DataIntegrityError, FlowStateError
from hrms_auth.auth.models import Identity, Role
from hrms_auth.flows.impersonation import ImpersonationOverlay
from hrms_auth.flows.results import Outcome
from hrms_auth.services.auth_service import AuthService
from hrms_auth.session.store import SessionStore


@pytest.mark.asyncio
async def test_non_privileged_role_is_a_no_op(service, backend) -> None:
    await service.login.login("hr@acme.test", "hr-pass")
    before = service.identity

    result = await service.impersonation.impersonate(Role.employee)

    assert result.outcome is Outcome.denied
    assert result.message == "Only employers can impersonate roles."
    assert service.identity is before
    assert service.impersonation.is_impersonating is False
    assert not any(c.startswith("/auth/impersonate") for c in backend.calls)


@pytest.mark.asyncio
async def test_impersonate_and_restore(service) -> None:
    await service.login.login("boss@acme.test", "boss-pass")
    original = service.identity

    result = await service.impersonation.impersonate("employee")

    assert result.outcome is Outcome.impersonating
    assert service.identity.role is Role.employee
    assert service.identity.employee_id == "E-100"
    assert service.impersonation.is_impersonating
    assert service.impersonation.original is original

    restored = await service.impersonation.stop_impersonating()

    assert restored.outcome is Outcome.restored
    assert service.identity == original
    assert service.impersonation.is_impersonating is False


@pytest.mark.asyncio
async def test_second_impersonation_keeps_the_original(service) -> None:
    await service.login.login("boss@acme.test", "boss-pass")
    original = service.identity

    first = await service.impersonation.impersonate(Role.employer)
    second = await service.impersonation.impersonate(Role.hr)

    assert first.outcome is Outcome.impersonating
    assert second.outcome is Outcome.impersonating
    assert service.identity.role is Role.hr
    assert service.impersonation.original is original
    await service.impersonation.stop_impersonating()
    assert service.identity == original
    assert service.identity.role is Role.employer


@pytest.mark.asyncio
async def test_non_employer_substitute_cannot_switch_again(service, backend) -> None:
    await service.login.login("boss@acme.test", "boss-pass")
    original = service.identity
    await service.impersonation.impersonate(Role.hr)
    substitute = service.identity
    calls_before = len(backend.calls)

    result = await service.impersonation.impersonate(Role.employee)

    assert result.outcome is Outcome.denied
    assert result.message == "Only employers can impersonate roles."
    assert service.identity is substitute
    assert service.impersonation.original is original
    assert len(backend.calls) == calls_before


@pytest.mark.asyncio
async def test_unknown_role_is_a_failed_result(service, backend) -> None:
    await service.login.login("boss@acme.test", "boss-pass")
    before = service.identity

    result = await service.impersonation.impersonate("astronaut")

    assert result.outcome is Outcome.failed
    assert isinstance(result.error, DataIntegrityError)
    assert service.identity is before
    assert service.impersonation.is_impersonating is False
    assert service.impersonation.loading is False
    assert not any(c.startswith("/auth/impersonate") for c in backend.calls)


@pytest.mark.asyncio
async def test_stop_without_impersonation_is_a_no_op(service) -> None:
    await service.login.login("boss@acme.test", "boss-pass")
    before = service.identity

    assert await service.impersonation.stop_impersonating() is None
    assert service.identity is before


@pytest.mark.asyncio
async def test_server_failure_leaves_no_saved_original(service) -> None:
    await service.login.login("boss@acme.test", "boss-pass")
    before = service.identity

    result = await service.impersonation.impersonate(Role.it_admin)

    assert result.outcome is Outcome.failed
    assert service.identity is before
    assert service.impersonation.is_impersonating is False


@pytest.mark.asyncio
async def test_substitute_is_never_persisted(service, settings, http) -> None:
    await service.login.login("boss@acme.test", "boss-pass")
    await service.impersonation.impersonate(Role.employee)

    restarted = AuthService(settings=settings, http=http)
    try:
        await restarted.startup()
        assert restarted.identity is not None
        assert restarted.identity.role is Role.employer
    finally:
        await restarted.aclose()


@pytest.mark.asyncio
async def test_logout_drops_the_overlay(service) -> None:
    await service.login.login("boss@acme.test", "boss-pass")
    await service.impersonation.impersonate(Role.employee)

    await service.logout()

    assert service.impersonation.is_impersonating is False
    assert service.identity is None


@pytest.mark.asyncio
async def test_requires_a_session(service) -> None:
    with pytest.raises(FlowStateError):
        await service.impersonation.impersonate(Role.hr)


class _GatedClient:
    """
    Impersonation calls block until the test releases them.
    """

    def __init__(self) -> None:
        self.gate = asyncio.Event()

    async def impersonate(self, *, role: str) -> dict[str, Any]:
        await self.gate.wait()
        return {"user": {"_id": f"{role}-1", "email": f"{role}@acme.test", "role": role}}


async def _employer_overlay(store: SessionStore) -> tuple[ImpersonationOverlay, _GatedClient]:
    client = _GatedClient()
    overlay = ImpersonationOverlay(store=store, client=client)
    boss = Identity(id="b-1", email="boss@acme.test", role=Role.employer, name="boss", token="t")
    await store.set(boss)
    return overlay, client


@pytest.mark.asyncio
async def test_response_after_logout_is_ignored(store: SessionStore) -> None:
    overlay, client = await _employer_overlay(store)

    pending = asyncio.create_task(overlay.impersonate(Role.hr))
    await asyncio.sleep(0)
    assert overlay.loading is True
    await store.clear()
    client.gate.set()
    result = await pending

    assert result.outcome is Outcome.superseded
    assert store.identity is None
    assert overlay.is_impersonating is False
    assert overlay.loading is False


@pytest.mark.asyncio
async def test_response_after_stop_is_ignored(store: SessionStore) -> None:
    overlay, client = await _employer_overlay(store)
    client.gate.set()
    await overlay.impersonate(Role.employer)
    original = overlay.original
    client.gate.clear()

    pending = asyncio.create_task(overlay.impersonate(Role.hr))
    await asyncio.sleep(0)
    restored = await overlay.stop_impersonating()
    client.gate.set()
    result = await pending

    assert restored.outcome is Outcome.restored
    assert result.outcome is Outcome.superseded
    assert store.identity is original
    assert overlay.is_impersonating is False

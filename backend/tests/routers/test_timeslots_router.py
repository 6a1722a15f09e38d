from datetime import time, timezone
from typing import Any, cast

import pytest
from fastapi import HTTPException
from seating.deps import CurrentUser
from seating.domain.errors import TimeslotInUseError, TimeslotNotFoundError
from seating.models import Timeslot, UserRole
from seating.routers import timeslots as router
from seating.schemas import TimeslotCreate, TimeslotUpdate
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

ADMIN = CurrentUser(id=1, role=UserRole.ADMIN)


class DummySession:
    """Minimal async session stub that supports `async with session.begin()`."""

    async def __aenter__(self) -> "DummySession":
        return self

    async def __aexit__(self, exc_type: object, exc: object, tb: object) -> bool:
        return False

    def begin(self) -> "DummySession":
        return self


def _session() -> AsyncSession:
    return cast(AsyncSession, DummySession())


@pytest.fixture(autouse=True)
def _patch_repos(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(router, "SqlAlchemyTimeslotRepository", lambda s: s)
    monkeypatch.setattr(router, "SqlAlchemyReservationLedger", lambda s: s)


@pytest.mark.asyncio
async def test_create_timeslot_returns_hh_mm(monkeypatch: pytest.MonkeyPatch, make_timeslot) -> None:
    async def fake_create(repo: object, *, start_time: time, is_active: bool) -> Timeslot:
        assert is_active is False
        return make_timeslot(9, start_time.hour, start_time.minute, is_active=is_active)

    monkeypatch.setattr(router.timeslot_usecase, "create_timeslot", fake_create)
    result = await router.create_timeslot(
        payload=TimeslotCreate(start_time=time(19, 30), is_active=False),
        session=_session(),
    )
    assert result.model_dump() == {"id": 9, "start_time": "19:30", "is_active": False}


@pytest.mark.asyncio
async def test_create_timeslot_rejects_timezone_aware_time() -> None:
    with pytest.raises(HTTPException) as excinfo:
        await router.create_timeslot(
            payload=TimeslotCreate(start_time=time(19, 30, tzinfo=timezone.utc)),
            session=_session(),
        )
    assert excinfo.value.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("error", "status_code"),
    [(TimeslotNotFoundError("x"), 404), (TimeslotInUseError("x"), 409)],
)
async def test_update_timeslot_maps_errors(monkeypatch: pytest.MonkeyPatch, error: Exception, status_code: int) -> None:
    async def fake_update(*args: object, **kwargs: object) -> Timeslot:
        raise error

    monkeypatch.setattr(router.timeslot_usecase, "update_timeslot", fake_update)
    with pytest.raises(HTTPException) as excinfo:
        await router.update_timeslot(payload=TimeslotUpdate(is_active=False), timeslot_id=1, session=_session())
    assert excinfo.value.status_code == status_code


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("error", "status_code"),
    [
        (TimeslotNotFoundError("x"), 404),
        (TimeslotInUseError("x"), 409),
        (IntegrityError(None, None, Exception("fk")), 409),  # type: ignore[arg-type]
    ],
)
async def test_delete_timeslot_maps_errors(monkeypatch: pytest.MonkeyPatch, error: Exception, status_code: int) -> None:
    async def fake_delete(*args: object, **kwargs: object) -> Timeslot:
        raise error

    monkeypatch.setattr(router.timeslot_usecase, "delete_timeslot", fake_delete)
    with pytest.raises(HTTPException) as excinfo:
        await router.delete_timeslot(timeslot_id=1, session=_session(), admin=ADMIN)
    assert excinfo.value.status_code == status_code


@pytest.mark.asyncio
async def test_delete_timeslot_emits_audit(monkeypatch: pytest.MonkeyPatch, make_timeslot) -> None:
    calls: list[dict[str, Any]] = []

    async def fake_delete(*args: object, **kwargs: object) -> Timeslot:
        return make_timeslot(1, 19)

    monkeypatch.setattr(router.timeslot_usecase, "delete_timeslot", fake_delete)
    monkeypatch.setattr(router, "emit_audit_log", lambda **kwargs: calls.append(kwargs))
    await router.delete_timeslot(timeslot_id=1, session=_session(), admin=ADMIN)
    assert calls[0]["action"] == "timeslot.deleted"
    assert calls[0]["timeslot_id"] == 1


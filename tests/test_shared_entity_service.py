"""Tests for the CRUD service that broadcasts after commit."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import ValidationError

from coach_realtime.adapters.persistence import InMemoryEntityRepository, SequenceCounter
from coach_realtime.application.services import SharedEntityCrudService
from coach_realtime.bootstrap import invoice_defaults
from coach_realtime.domain.errors import NotFoundError, PermissionDeniedError
from coach_realtime.domain.models import ChangeKind, EntityType, Invoice, Session

SESSION_DATA: dict[str, Any] = {
    "clientId": "client-1",
    "sessionDate": "2026-11-03",
    "startTime": "09:00",
    "endTime": "10:00",
    "location": "Zoom",
}


def _session_service(
    broadcaster: Any, repository: Any = None
) -> SharedEntityCrudService[Session]:
    return SharedEntityCrudService(
        EntityType.SESSION,
        Session,
        repository or InMemoryEntityRepository[Session]("sessions"),
        broadcaster,
    )


class TestCreate:
    """Tests for creating entities."""

    @pytest.mark.asyncio
    async def test_when_created_then_actor_is_owner_and_event_is_broadcast_once(
        self, recording_broadcaster: MagicMock
    ) -> None:
        """Given valid data, when creating, then coachId is the actor and one event is sent."""
        service = _session_service(recording_broadcaster)

        session = await service.create("coach-1", SESSION_DATA)

        assert session.coach_id == "coach-1"
        assert session.client_id == "client-1"
        assert session.id
        recording_broadcaster.broadcast.assert_called_once_with(
            EntityType.SESSION, session, ChangeKind.CREATED
        )

    @pytest.mark.asyncio
    async def test_when_client_sends_server_fields_then_they_are_ignored(
        self, recording_broadcaster: MagicMock
    ) -> None:
        """Given a payload with id and coachId, when creating, then the server values win."""
        service = _session_service(recording_broadcaster)

        session = await service.create(
            "coach-1", {**SESSION_DATA, "id": "chosen-by-client", "coachId": "someone-else"}
        )

        assert session.id != "chosen-by-client"
        assert session.coach_id == "coach-1"

    @pytest.mark.asyncio
    async def test_when_snake_case_keys_sent_then_they_are_accepted(
        self, recording_broadcaster: MagicMock
    ) -> None:
        service = _session_service(recording_broadcaster)

        session = await service.create(
            "coach-1",
            {
                "client_id": "client-1",
                "session_date": "2026-11-03",
                "start_time": "09:00",
                "end_time": "10:00",
                "focus_topic": "Habits",
            },
        )

        assert session.focus_topic == "Habits"

    @pytest.mark.asyncio
    async def test_when_data_invalid_then_nothing_is_saved_or_broadcast(
        self, recording_broadcaster: MagicMock
    ) -> None:
        """Given invalid data, when creating, then validation fails before any commit."""
        repository = InMemoryEntityRepository[Session]("sessions")
        service = _session_service(recording_broadcaster, repository)

        with pytest.raises(ValidationError):
            await service.create("coach-1", {**SESSION_DATA, "endTime": "08:00"})

        assert len(repository) == 0
        recording_broadcaster.broadcast.assert_not_called()

    @pytest.mark.asyncio
    async def test_when_commit_fails_then_no_event_is_broadcast(
        self, recording_broadcaster: MagicMock
    ) -> None:
        """Given a repository whose save fails, when creating, then nothing is broadcast."""
        repository = MagicMock()
        repository.save = AsyncMock(side_effect=OSError("disk full"))
        service = _session_service(recording_broadcaster, repository)

        with pytest.raises(OSError):
            await service.create("coach-1", SESSION_DATA)

        recording_broadcaster.broadcast.assert_not_called()


class TestUpdateAndDelete:
    """Tests for updating and deleting entities."""

    @pytest.mark.asyncio
    async def test_when_client_updates_then_change_is_committed_and_broadcast(
        self, recording_broadcaster: MagicMock
    ) -> None:
        """Given a session, when the client updates it, then the update is broadcast."""
        service = _session_service(recording_broadcaster)
        created = await service.create("coach-1", SESSION_DATA)

        updated = await service.update(created.id, "client-1", {"notes": "Bring journal"})

        assert updated.notes == "Bring journal"
        assert updated.id == created.id
        assert updated.updated_at >= created.updated_at
        assert updated.created_at == created.created_at
        recording_broadcaster.broadcast.assert_called_with(
            EntityType.SESSION, updated, ChangeKind.UPDATED
        )

    @pytest.mark.asyncio
    async def test_when_ownership_field_changes_then_forbidden(
        self, recording_broadcaster: MagicMock
    ) -> None:
        """Given a session, when changing clientId, then the update is refused."""
        service = _session_service(recording_broadcaster)
        created = await service.create("coach-1", SESSION_DATA)
        recording_broadcaster.reset_mock()

        with pytest.raises(PermissionDeniedError, match="clientId"):
            await service.update(created.id, "coach-1", {"clientId": "client-2"})

        recording_broadcaster.broadcast.assert_not_called()

    @pytest.mark.asyncio
    async def test_when_ownership_field_repeated_unchanged_then_allowed(
        self, recording_broadcaster: MagicMock
    ) -> None:
        service = _session_service(recording_broadcaster)
        created = await service.create("coach-1", SESSION_DATA)

        updated = await service.update(
            created.id, "coach-1", {"clientId": "client-1", "location": "Office"}
        )

        assert updated.location == "Office"

    @pytest.mark.asyncio
    async def test_when_outsider_updates_then_forbidden(
        self, recording_broadcaster: MagicMock
    ) -> None:
        service = _session_service(recording_broadcaster)
        created = await service.create("coach-1", SESSION_DATA)

        with pytest.raises(PermissionDeniedError):
            await service.update(created.id, "coach-2", {"notes": "mine now"})

    @pytest.mark.asyncio
    async def test_when_unknown_id_then_not_found(self, recording_broadcaster: MagicMock) -> None:
        service = _session_service(recording_broadcaster)

        with pytest.raises(NotFoundError):
            await service.get_for_user("missing", "coach-1")

    @pytest.mark.asyncio
    async def test_when_deleted_then_deletion_is_broadcast(
        self, recording_broadcaster: MagicMock
    ) -> None:
        """Given a session, when deleted, then a deleted event is broadcast and it is gone."""
        service = _session_service(recording_broadcaster)
        created = await service.create("coach-1", SESSION_DATA)

        removed = await service.delete(created.id, "client-1")

        assert removed.id == created.id
        recording_broadcaster.broadcast.assert_called_with(
            EntityType.SESSION, removed, ChangeKind.DELETED
        )
        assert await service.list_for_user("coach-1") == []

    @pytest.mark.asyncio
    async def test_list_returns_only_own_entities(self, recording_broadcaster: MagicMock) -> None:
        service = _session_service(recording_broadcaster)
        mine = await service.create("coach-1", SESSION_DATA)
        await service.create("coach-2", {**SESSION_DATA, "clientId": "client-9"})

        assert await service.list_for_user("client-1") == [mine]


class TestInvoiceNumbering:
    """Tests for server-assigned invoice numbers."""

    @pytest.mark.asyncio
    async def test_when_invoices_created_then_numbers_are_sequential(
        self, recording_broadcaster: MagicMock
    ) -> None:
        """Given two new invoices, when created, then they get INV-0001 and INV-0002."""
        service = SharedEntityCrudService(
            EntityType.INVOICE,
            Invoice,
            InMemoryEntityRepository[Invoice]("invoices"),
            recording_broadcaster,
            immutable_fields=frozenset({"coachId", "clientId", "invoiceNumber"}),
            field_defaults=invoice_defaults(SequenceCounter()),
        )
        data = {"clientId": "client-1", "amount": 80, "invoiceNumber": "MINE-1"}

        first = await service.create("coach-1", data)
        second = await service.create("coach-1", data)

        assert first.invoice_number == "INV-0001"
        assert second.invoice_number == "INV-0002"

        with pytest.raises(PermissionDeniedError, match="invoiceNumber"):
            await service.update(first.id, "coach-1", {"invoiceNumber": "INV-9999"})

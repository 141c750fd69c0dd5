"""ClientService: persisted client profiles."""

import pytest

from catering_kernel.exceptions import ConflictError, MissingReasonError


class TestClientService:

    def test_create_and_update(self, client_service, ctx, captured_logs):
        client = client_service.create_client(ctx, name="Rao Family", phone="99000 11111")
        client = client_service.update_client_profile(
            client.id, ctx, "Office address", address="12 MG Road", expected_version=1
        )
        stored = client_service.load_client(client.id)
        assert stored.address == "12 MG Road"
        assert stored.version == 2
        assert [e.action.value for e in stored.history] == ["created", "updated"]

        messages = [r["message"] for r in captured_logs()]
        assert "client_created" in messages
        assert "client_profile_updated" in messages

    def test_stale_version(self, client_service, ctx):
        client = client_service.create_client(ctx, name="Rao Family")
        client_service.update_client_profile(client.id, ctx, "typo", name="Rao Family Trust")
        with pytest.raises(ConflictError):
            client_service.update_client_profile(
                client.id, ctx, "again", name="Rao", expected_version=1
            )

    def test_reason_required(self, client_service, ctx):
        client = client_service.create_client(ctx, name="Rao Family")
        with pytest.raises(MissingReasonError):
            client_service.update_client_profile(client.id, ctx, None, phone="1")

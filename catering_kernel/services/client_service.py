"""Client service -- persisted client creation and profile edits."""

from __future__ import annotations

from typing import Any

from catering_kernel.domain import clients
from catering_kernel.domain.commands import CommandContext
from catering_kernel.domain.models import Client
from catering_kernel.logging_config import LogContext, get_logger
from catering_kernel.services.base import BaseService

logger = get_logger("services.client")


class ClientService(BaseService):

    def create_client(self, ctx: CommandContext, *, name: str, **profile: Any) -> Client:
        client = self._run(
            "create_client", lambda: clients.create_client(ctx, name=name, **profile), ctx
        )
        logger.info("client_created", extra={"client_id": client.id})
        return client

    def update_client_profile(
        self,
        client_id: str,
        ctx: CommandContext,
        reason: str | None,
        expected_version: int | None = None,
        **fields: Any,
    ) -> Client:
        with LogContext.bind(client_id=client_id):
            client = self.load_client(client_id, expected_version)
            updated = self._run(
                "update_client_profile",
                lambda: clients.update_client_profile(client, ctx, reason, **fields),
                ctx,
            )
            logger.info(
                "client_profile_updated",
                extra={"fields": sorted(fields), "version": updated.version},
            )
            return updated

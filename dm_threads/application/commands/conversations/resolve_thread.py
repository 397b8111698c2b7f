"""Resolve Thread Command - server-side entry point to the Thread Resolver."""

from dataclasses import dataclass

from dm_threads.application.common.interfaces import Command, CommandHandler
from dm_threads.application.services.thread_resolver import (
    ResolutionOutcome,
    ThreadResolver,
)
from dm_threads.domain.value_objects.person_id import PersonId


@dataclass(frozen=True)
class ResolveThreadCommand(Command[ResolutionOutcome]):
    identifier: str
    current_user_id: PersonId


class ResolveThreadHandler(CommandHandler[ResolutionOutcome]):
    def __init__(self, resolver: ThreadResolver):
        self._resolver = resolver

    async def execute(self, command: ResolveThreadCommand) -> ResolutionOutcome:
        return await self._resolver.resolve_outcome(
            command.identifier, command.current_user_id
        )

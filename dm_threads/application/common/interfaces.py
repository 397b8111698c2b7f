"""
Base interfaces for CQRS pattern.

Usage:
    @dataclass(frozen=True)
    class SendMessageCommand(Command[Message]):
        conversation_id: ConversationId
        sender_id: PersonId
        text: str

    class SendMessageHandler(CommandHandler[Message]):
        def __init__(self, conv_repo: ConversationRepository, msg_repo: MessageRepository):
            ...

        async def execute(self, cmd: SendMessageCommand) -> Message:
            ...
"""
from abc import ABC, abstractmethod
from typing import TypeVar, Generic

T = TypeVar("T")
class Command(ABC, Generic[T]):
    """Base class for write operations"""
    pass

class CommandHandler(ABC, Generic[T]):
    @abstractmethod
    async def execute(self, command: Command[T]) -> T:
        """Execute the command and return a result of type T"""
        ...

class Query(ABC, Generic[T]):
    """Base class for read operations"""
    pass

class QueryHandler(ABC, Generic[T]):
    @abstractmethod
    async def execute(self, query: Query[T]) -> T:
        """Execute the query and return a result of type T"""
        ...

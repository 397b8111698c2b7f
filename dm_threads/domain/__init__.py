"""
DOMAIN LAYER - Direct-messaging threads

This layer contains:
- Entities: Conversation, Message
- Value Objects: ConversationId, PersonId, MessageId, MessageSummary
- Ports: repository interfaces that infrastructure implements
- Services: pure domain logic (identifier classification, direct-thread lookup)
- Exceptions: domain-specific errors

RULES:
1. NO framework imports (no FastAPI, Prisma, Pydantic, etc.)
2. NO I/O operations
3. Only depends on Python stdlib
"""

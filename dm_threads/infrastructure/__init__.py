"""
Infrastructure Layer - Technical implementations of domain ports.

This layer contains:
- persistence/: Database implementations (Prisma repositories)
- http/: Thread API client implementing the same ports (httpx)
- cache/: Redis client factory
- events/: Redis pub/sub relay for thread events

persistence/ is not imported here: it needs a generated Prisma client.
"""

"""
APPLICATION LAYER - Use Cases & Orchestration

This layer contains:
- commands/  → Write operations (create thread, send message, resolve thread)
- queries/   → Read operations (list threads, get thread, get messages)
- services/  → Thread resolution, resolution guard, cross-surface sync,
               navigation history and the messaging surfaces
- dto/       → Data Transfer Objects
- common/    → Shared interfaces (Command, Query base classes)

Rules:
- Depends on Domain layer only
- No HTTP/framework code here
"""

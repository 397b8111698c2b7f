"""Write operations (CQRS commands)."""

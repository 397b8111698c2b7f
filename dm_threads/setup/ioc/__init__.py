"""Dependency injection (dishka)."""

from dm_threads.setup.ioc.container import HandlerProvider, create_container

__all__ = ["HandlerProvider", "create_container"]

from . import merge

routers = [
    merge.router,
]

__all__ = [
    "routers",
]

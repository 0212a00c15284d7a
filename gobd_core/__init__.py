"""GoBD governance core: audit chain, automation guard and AI insight workflow."""


def __getattr__(name):
    """Lazy import so the services can be used without loading FastAPI."""
    if name == "create_app":
        from .main import create_app
        return create_app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

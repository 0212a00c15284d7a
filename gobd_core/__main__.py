"""Run the service with uvicorn: ``python -m gobd_core``."""

from gobd_core.core.config import get_settings

if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    settings = get_settings()
    uvicorn.run("gobd_core.main:app", host=settings.http_host, port=settings.http_port)

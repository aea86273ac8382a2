"""Run the discharge service with uvicorn."""

from fastapi import FastAPI

from .app import app


def get_app() -> FastAPI:
    """Return the FastAPI app instance."""
    return app


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run(
        "services.discharge.main:app",
        host="0.0.0.0",
        port=8010,
        reload=True,
    )

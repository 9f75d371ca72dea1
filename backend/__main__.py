"""Run the backend: python -m backend"""
import uvicorn

from .config import get_settings


def main():
    settings = get_settings()
    uvicorn.run("backend.main:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()

from fastapi import FastAPI

from .core.config import settings
from .core.logging import setup_logging
from .routers import register_routers

setup_logging()

app = FastAPI(title=settings.APP_NAME, version="0.1.0")


@app.get("/health")
def health():
    return {"status": "ok"}


register_routers(app)

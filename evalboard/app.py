import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from evalboard import api_v1, db
from evalboard.routes import dashboard, evaluations, sellers

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app):
    db.init_pools()
    try:
        yield
    finally:
        db.close_pools()


def create_app():
    app = FastAPI(title="evalboard", version=api_v1.VERSION, lifespan=lifespan)
    app.include_router(api_v1.router)
    app.include_router(dashboard.router)
    app.include_router(sellers.router)
    app.include_router(evaluations.router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "3005")))

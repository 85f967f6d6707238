from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.children.router import router as children_router
from app.api.v1.registry.router import router as registry_router
from app.core.config import settings
from app.core.logging_config import setup_logging


def create_app() -> FastAPI:
    setup_logging(settings.log_level)
    app = FastAPI(title="Canteen Registry Backend")

    # CORS: allow the web and mobile frontends to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(registry_router)
    app.include_router(children_router)

    return app


app = create_app()

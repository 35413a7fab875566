from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .exceptions import install_exception_handlers
from .routers import backstop, images
from .services.comparison import ComparisonService
from .services.image_store import InMemoryImageStore
from .settings import SETTINGS, Settings


def create_app(settings: Settings = SETTINGS) -> FastAPI:
    settings.ensure_dirs()
    paths = settings.work_paths()

    app = FastAPI(title="visreg", version="0.1.0")
    install_exception_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    app.include_router(backstop.router)
    app.include_router(images.router)
    app.mount("/diff-images", StaticFiles(directory=str(paths.diff_images_dir)), name="diff-images")

    app.state.comparison_service = ComparisonService(
        store=InMemoryImageStore(),
        settings=settings,
        paths=paths,
    )
    return app


app = create_app()

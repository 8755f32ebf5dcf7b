from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import ConfigManager
from core.controller import ModeController


def create_app(config_manager: ConfigManager, controller: ModeController) -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(title="Hextech Assistant", version="1.0.0")

    # CORS for the overlay frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Store references for route handlers
    app.state.config_manager = config_manager
    app.state.controller = controller

    from api.routes.control import router as control_router
    from api.routes.dashboard import router as dashboard_router
    from api.routes.settings import router as settings_router

    app.include_router(control_router, prefix="/api/control", tags=["control"])
    app.include_router(dashboard_router, prefix="/api", tags=["dashboard"])
    app.include_router(settings_router, prefix="/api/settings", tags=["settings"])

    @app.get("/api/health")
    async def health():
        return {
            "status": "ok",
            "mode": controller.mode.value,
            "llm_mode": config_manager.config.mode,
            "provider": config_manager.config.provider,
            "duplex_active": controller.duplex_active,
        }

    return app

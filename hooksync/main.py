import logging
from typing import Optional

from fastapi import FastAPI

from .api import github, hooks
from .config import Settings, get_settings
from .startup import shutdown_tasks, startup_tasks

# ==========================
# Settings & Logging
# ==========================

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger("hooksync")


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    app_settings = app_settings or settings
    app = FastAPI(title=app_settings.app_name)

    # Include API routers
    app.include_router(github.router)
    app.include_router(hooks.router, prefix=app_settings.webhooks_base_path.rstrip("/"))

    # ==========================
    # Lifecycle Events
    # ==========================

    @app.on_event("startup")
    async def startup_event():
        """Build the plugin, load subscriptions and reconcile org webhooks"""
        runtime = await startup_tasks(app_settings)
        app.state.runtime = runtime
        app.state.plugin = runtime.plugin
        await runtime.plugin.on_infrastructure_ready()
        logger.info("Application started")

    @app.on_event("shutdown")
    async def shutdown_event():
        runtime = getattr(app.state, "runtime", None)
        if runtime is not None:
            await shutdown_tasks(runtime)
        logger.info("Application shutdown")

    return app


app = create_app()

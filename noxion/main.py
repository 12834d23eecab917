import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from noxion.config import settings
from noxion.exception_handlers import register_exception_handlers
from noxion.exceptions import PluginNotFoundError
from noxion.plugins.loader import create_plugin, initialize_plugins, load_plugins_config
from noxion.plugins.registry import PluginRegistry
from noxion.plugins.runtime import BlogConfig, BlogPluginConfig, MultiTenantRuntime
from noxion.routes import blogs, plugins
from noxion.scheduler import schedule_cache_cleanup, scheduler

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

DEFAULT_BLOG_ID = "default"


async def _initialize_default_blog(runtime: MultiTenantRuntime) -> None:
    """
    Register the blog configured through NOTION_TOKEN / NOTION_DATABASE_ID, if any.

    Plugin instances come from the runtime or the factory table, never from
    the single-tenant registry.
    """
    if not settings.notion_token or not settings.notion_database_id:
        logger.info("No default Notion credentials configured; runtime starts empty")
        return

    plugin_configs = []
    for name, entry in load_plugins_config().items():
        try:
            plugin = runtime.get_plugin(name) or create_plugin(name)
        except PluginNotFoundError:
            logger.warning("Unknown plugin %s in plugins config; skipped for the default blog", name)
            continue
        plugin_configs.append(
            BlogPluginConfig(
                plugin=plugin,
                enabled=entry.get("enabled", True),
                settings=dict(entry.get("settings", {})),
            )
        )

    await runtime.initialize_blog(
        BlogConfig(
            blog_id=DEFAULT_BLOG_ID,
            notion_token=settings.notion_token,
            notion_database_id=settings.notion_database_id,
            plugins=plugin_configs,
        )
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting up %s %s (%s)", settings.app_name, settings.app_version, settings.environment)
    registry: PluginRegistry = app.state.plugin_registry
    runtime: MultiTenantRuntime = app.state.runtime

    await initialize_plugins(registry)
    await _initialize_default_blog(runtime)
    for client in runtime.content_clients():
        await client.preload()

    schedule_cache_cleanup(lambda: [registry.content_client, *runtime.content_clients()])
    scheduler.start()

    yield

    logger.info("Shutting down the application...")
    scheduler.shutdown(wait=False)
    await runtime.aclose()
    await registry.content_client.aclose()


def create_app(
    registry: Optional[PluginRegistry] = None,
    runtime: Optional[MultiTenantRuntime] = None,
) -> FastAPI:
    """Create the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Notion-backed blog engine with a per-blog plugin runtime",
        debug=settings.debug,
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.plugin_registry = registry or PluginRegistry()
    app.state.runtime = runtime or MultiTenantRuntime()

    register_exception_handlers(app)

    app.include_router(plugins.router, prefix="/api/v1")
    app.include_router(blogs.router, prefix="/api/v1")

    @app.get("/", tags=["Root"])
    async def root():
        return {"message": f"Welcome to the {settings.app_name} API"}

    if settings.debug:
        logger.info("Running in %s mode", settings.environment)
        logging.getLogger("httpx").setLevel(logging.DEBUG)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("noxion.main:app", host="0.0.0.0", port=8000, reload=settings.debug)

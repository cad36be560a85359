from contextlib import asynccontextmanager
from fastapi import FastAPI

from tasknotes.api.error_handlers import register_error_handlers
from tasknotes.cache.layer import cache_layer
from tasknotes.core.config import SettingsDep, get_settings
from tasknotes.core.logging import configure_logging
from tasknotes.routers import notes, reports, tasks, users


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(get_settings().log_level)
    await cache_layer.init_cache()
    yield
    await cache_layer.close()


app = FastAPI(
    title="Task & Note Tracker API",
    description="Multi-tenant tasks and notes with an ownership-scoped cache",
    swagger_ui_parameters={"displayRequestDuration": True},
    version="1.0.0",
    lifespan=lifespan,
)

register_error_handlers(app)

# Include routers
app.include_router(users.router)
app.include_router(tasks.router)
app.include_router(notes.router)
app.include_router(reports.router)


@app.get("/")
async def root():
    return {
        "message": "Welcome to Task & Note Tracker API",
        "docs": "/docs",
        "version": "1.0.0",
    }


@app.get("/health")
async def health_check(settings: SettingsDep):
    return {
        "status": "healthy",
        "redis_configured": bool(settings.redis_dsn),
        "cache": cache_layer.get_stats(),
    }

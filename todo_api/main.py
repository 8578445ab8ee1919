import logging
from contextlib import AsyncExitStack, asynccontextmanager

from fastapi import FastAPI

from todo_api.cache.layer import RedisCacheLayer, build_cache_layer
from todo_api.core.config import get_settings
from todo_api.core.errors import register_exception_handlers
from todo_api.core.logging import configure_logging
from todo_api.database import apply_migrations_with_retry, get_engine, task_repository_scope
from todo_api.events.publisher import RabbitMQEventPublisher
from todo_api.routers import tasks
from todo_api.rpc.server import TodoAnalyticsServicer, create_grpc_server

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.log_level)

    if settings.migrate_on_startup:
        await apply_migrations_with_retry(
            max_retries=settings.migration_max_retries,
            delay_seconds=settings.migration_retry_delay_seconds,
            config_path=settings.alembic_config,
        )

    async with AsyncExitStack() as stack:
        stack.push_async_callback(get_engine().dispose)

        cache = build_cache_layer(settings)
        stack.push_async_callback(cache.close)
        if isinstance(cache, RedisCacheLayer):
            await cache.init_cache()
        app.state.cache = cache

        publisher = RabbitMQEventPublisher(
            settings.rabbitmq_url,
            exchange_name=settings.events_exchange,
            routing_key=settings.events_routing_key,
        )
        stack.push_async_callback(publisher.close)
        await publisher.connect()
        app.state.publisher = publisher

        if settings.grpc_enabled:
            grpc_server = create_grpc_server(
                TodoAnalyticsServicer(task_repository_scope), settings.grpc_port
            )
            await grpc_server.start()
            stack.push_async_callback(grpc_server.stop, 5)
            logger.info(f"gRPC analytics listening on port {settings.grpc_port}")

        yield


app = FastAPI(
    title="Todo Task API",
    description="Task management API with PostgreSQL, Redis caching and RabbitMQ events",
    swagger_ui_parameters={"displayRequestDuration": True},
    version="1.0.0",
    lifespan=lifespan,
)

register_exception_handlers(app)

# Include routers
app.include_router(tasks.router)


@app.get("/")
async def root():
    return {
        "message": "Welcome to Todo Task API",
        "docs": "/docs",
        "version": "1.0.0",
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}

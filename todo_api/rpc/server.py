from __future__ import annotations

import logging
from contextlib import AbstractAsyncContextManager
from typing import Callable

import grpc
from sqlalchemy.exc import SQLAlchemyError

from todo_api.repositories.task_repository import TaskRepository
from todo_api.rpc.messages import SERVICE_NAME, StatsRequest, StatsResponse
from todo_api.services.analytics_service import AnalyticsService

logger = logging.getLogger(__name__)

RepositoryScope = Callable[[], AbstractAsyncContextManager[TaskRepository]]


class TodoAnalyticsServicer:
    """Serves ``todo.TodoAnalytics``; every call gets its own repository."""

    def __init__(self, repository_scope: RepositoryScope) -> None:
        self._repository_scope = repository_scope

    async def GetStats(self, request, context: grpc.aio.ServicerContext):
        try:
            async with self._repository_scope() as repository:
                stats = await AnalyticsService(repository).get_stats()
        except SQLAlchemyError:
            logger.exception("GetStats failed")
            await context.abort(grpc.StatusCode.INTERNAL, "Internal server error")

        return StatsResponse(
            active_tasks=stats.active_count,
            completed_tasks=stats.completed_count,
        )


def build_analytics_handler(servicer: TodoAnalyticsServicer) -> grpc.GenericRpcHandler:
    return grpc.method_handlers_generic_handler(
        SERVICE_NAME,
        {
            "GetStats": grpc.unary_unary_rpc_method_handler(
                servicer.GetStats,
                request_deserializer=StatsRequest.FromString,
                response_serializer=StatsResponse.SerializeToString,
            ),
        },
    )


def create_grpc_server(servicer: TodoAnalyticsServicer, port: int) -> grpc.aio.Server:
    server = grpc.aio.server()
    server.add_generic_rpc_handlers((build_analytics_handler(servicer),))
    server.add_insecure_port(f"[::]:{port}")
    return server

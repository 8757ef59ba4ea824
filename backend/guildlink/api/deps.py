"""Shared dependencies for API endpoints."""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from guildlink.core.database import get_db
from guildlink.rpc.context import RPCServices
from guildlink.rpc.dispatcher import RPCDispatcher


def get_rpc_dispatcher(request: Request) -> RPCDispatcher:
    """Dispatcher built at startup and stored on app state."""
    dispatcher: RPCDispatcher = request.app.state.rpc_dispatcher
    return dispatcher


def get_rpc_services(request: Request) -> RPCServices:
    """Service collaborators built at startup and stored on app state."""
    services: RPCServices = request.app.state.rpc_services
    return services


DbSession = Annotated[AsyncSession, Depends(get_db)]
Dispatcher = Annotated[RPCDispatcher, Depends(get_rpc_dispatcher)]
Services = Annotated[RPCServices, Depends(get_rpc_services)]

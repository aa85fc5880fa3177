"""Dependency injection for FastAPI."""

from fastapi import Request

from config.settings import Settings
from messaging import (
    AttachmentStore,
    DestinationResolver,
    OutboundDispatcher,
    SessionSupervisor,
)


def get_settings(request: Request) -> Settings:
    """Get the settings the application was created with."""
    return request.app.state.settings


def get_supervisor(request: Request) -> SessionSupervisor:
    return request.app.state.supervisor


def get_resolver(request: Request) -> DestinationResolver:
    return request.app.state.resolver


def get_dispatcher(request: Request) -> OutboundDispatcher:
    return request.app.state.dispatcher


def get_attachments(request: Request) -> AttachmentStore:
    return request.app.state.attachments

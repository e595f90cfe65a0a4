"""Shared dependencies for API routes."""

from __future__ import annotations

from fastapi import Request

from leaselogic.services import Services


def get_services(request: Request) -> Services:
    """The service container built by the application lifespan."""
    return request.app.state.services

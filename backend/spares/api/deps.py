"""Shared route dependencies: process-wide services live on app.state (see main.lifespan)."""
from fastapi import Request

from spares.services.clock import Clock


def get_clock(request: Request) -> Clock:
    return request.app.state.clock

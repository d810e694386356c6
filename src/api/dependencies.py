"""FastAPI dependencies shared by the route handlers."""

from typing import Annotated

from fastapi import Depends, Request

from src.core.state import ServiceState


def get_services(request: Request) -> ServiceState:
    """Return the ``ServiceState`` published by the application lifespan.

    Args:
        request: The current request.

    Returns:
        ServiceState: The shared backend handles.
    """
    services: ServiceState = request.state.services
    return services


Services = Annotated[ServiceState, Depends(get_services)]

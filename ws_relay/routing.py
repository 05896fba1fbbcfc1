import os
import pkgutil
from importlib import import_module

from fastapi import APIRouter

from ws_relay.logging import logger

# Track registered modules to prevent duplicate logging
_registered_modules: set[str] = set()


def _include_package_routers(
    main_router: APIRouter, package_dir: str, package: str, kind: str
) -> None:
    for _, module, _ in pkgutil.iter_modules([package_dir]):
        imported = import_module(f".{module}", package=package)
        main_router.include_router(imported.router)

        if f"{package}.{module}" not in _registered_modules:
            logger.info(f'Register "{module}" {kind}')
            _registered_modules.add(f"{package}.{module}")


def collect_subrouters() -> APIRouter:
    """
    Collects all HTTP and WebSocket routers of the application.

    Every module in ``api/http`` and ``api/ws/consumers`` must expose a
    ``router`` attribute; each one is included into a single main router.
    """
    main_router: APIRouter = APIRouter()

    app_dir = os.path.dirname(__file__)
    app_name = os.path.basename(app_dir)

    _include_package_routers(
        main_router, f"{app_dir}/api/http", f"{app_name}.api.http", "api"
    )
    _include_package_routers(
        main_router,
        f"{app_dir}/api/ws/consumers",
        f"{app_name}.api.ws.consumers",
        "websocket consumer",
    )

    return main_router

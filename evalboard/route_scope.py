import logging

from fastapi import Request

from evalboard.config import get_route_header, get_route_table
from evalboard.resolvers.route_visibility import RouteScope

logger = logging.getLogger(__name__)

ROUTE_QUERY_PARAM = "route"


def scope_for_route(route_name, routes=None):
    if not route_name:
        return None
    if routes is None:
        routes = get_route_table()
    allowed = routes.get(route_name)
    if allowed is None:
        logger.info("No visibility restriction configured for route %s", route_name)
        return None
    return RouteScope(route_name, allowed)


def resolve_route_scope(request: Request):
    """Scope for the caller's route, read from the route header or ?route=.

    Both inputs are client-controlled and a missing route means unrestricted,
    so this must run behind a trusted proxy that sets the route header and
    strips any client-supplied value.
    """
    route_name = request.headers.get(get_route_header(), "").strip()
    if not route_name:
        route_name = (request.query_params.get(ROUTE_QUERY_PARAM) or "").strip()
    return scope_for_route(route_name)

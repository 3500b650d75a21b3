import logging

from fastapi import APIRouter, Depends

from evalboard.api_v1 import envelope, error_response, internal_error
from evalboard.errors import EvalboardError
from evalboard.evaluation_service import get_service
from evalboard.route_scope import resolve_route_scope

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api")


@router.get("/dashboard")
def get_dashboard(scope=Depends(resolve_route_scope)):
    try:
        data = get_service().get_dashboard(scope)
    except EvalboardError as e:
        return error_response(e)
    except Exception as e:
        logger.error("get_dashboard error: %s", e)
        return internal_error()
    return envelope(data)

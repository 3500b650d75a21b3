import logging

from fastapi import APIRouter, Depends

from evalboard.api_v1 import envelope, error_response, internal_error
from evalboard.errors import EvalboardError, InvalidInput
from evalboard.evaluation_service import get_service
from evalboard.route_scope import resolve_route_scope

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api")


@router.get("/seller/{seller_id}")
def get_seller(seller_id: str, scope=Depends(resolve_route_scope)):
    try:
        data = get_service().get_seller_detail(seller_id, scope)
    except InvalidInput as e:
        logger.warning("get_seller validation error: %s", e.message)
        return error_response(e)
    except EvalboardError as e:
        return error_response(e)
    except Exception as e:
        logger.error("get_seller error: %s", e)
        return internal_error()
    return envelope(data)

import logging

from fastapi import APIRouter, Depends

from app.api import deps
from app.schemas.user import OperatorResponse

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/me", response_model=OperatorResponse)
async def read_current_operator(
    operator: deps.OperatorContext = Depends(deps.get_current_operator),
) -> OperatorResponse:
    """Who the bearer token belongs to, and the role they hold here."""
    return OperatorResponse(user_id=operator.user_id, email=operator.email, role=operator.role)

# app/api/v1/routes_ramps.py
from typing import List

from fastapi import APIRouter

from app.api.v1.dependencies import routing_service
from app.models.datasets import Ramp

router = APIRouter(
    prefix="/api/ramps",
    tags=["ramps"],
)


@router.get("", response_model=List[Ramp], summary="Known wheelchair ramps")
def list_ramps() -> List[Ramp]:
    """
    The ramp dataset used by the destination ramp check.
    """
    return list(routing_service.ramps)

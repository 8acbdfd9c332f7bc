"""
Doodle Mentor パーソナリティAPI
"""

from fastapi import APIRouter

from core.personalities import PERSONALITIES
from models.api_models import PersonalitiesResponse, PersonalityInfo

router = APIRouter(prefix="/api", tags=["personalities"])


@router.get("/personalities", response_model=PersonalitiesResponse)
async def list_personalities():
    """利用可能なパーソナリティ一覧"""
    return PersonalitiesResponse(
        personalities=[
            PersonalityInfo(id=profile.id, name=profile.display_name, description=profile.system_prompt)
            for profile in PERSONALITIES.values()
        ]
    )

"""Main v1 API router that aggregates all sub-routers."""

from fastapi import APIRouter

from .auth import router as auth_router
from .users import router as users_router
from .partnerships import router as partnerships_router
from .streaks import router as streaks_router
from .thumb_kisses import router as thumb_kisses_router
from .canvas import router as canvas_router
from .games import router as games_router
from .questions import router as questions_router
from .messages import router as messages_router
from .date_ideas import router as date_ideas_router
from .countdowns import router as countdowns_router
from .referrals import router as referrals_router
from .photo_prompts import router as photo_prompts_router

# Main v1 router
router = APIRouter(prefix="/api/v1")

router.include_router(auth_router, prefix="/auth", tags=["Auth"])
router.include_router(users_router, prefix="/users", tags=["Users"])
router.include_router(partnerships_router, prefix="/partnerships", tags=["Partnerships"])
router.include_router(streaks_router, prefix="/streaks", tags=["Streaks"])
router.include_router(thumb_kisses_router, prefix="/thumb-kisses", tags=["Thumb Kisses"])
router.include_router(canvas_router, prefix="/canvas", tags=["Canvas"])
router.include_router(games_router, prefix="/games", tags=["Games"])
router.include_router(questions_router, prefix="/questions", tags=["Questions"])
router.include_router(messages_router, prefix="/messages", tags=["Messages"])
router.include_router(date_ideas_router, prefix="/date-ideas", tags=["Date Ideas"])
router.include_router(countdowns_router, prefix="/countdowns", tags=["Countdowns"])
router.include_router(referrals_router, prefix="/referrals", tags=["Referrals"])
router.include_router(photo_prompts_router, prefix="/photo-prompts", tags=["Photo Prompts"])

__all__ = ["router"]

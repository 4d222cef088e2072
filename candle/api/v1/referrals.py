"""Referral endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status

from candle.dependencies import get_current_user, get_referral_service
from candle.schemas.requests import RequestModel
from candle.schemas.responses import ApiResponse
from candle.services.referrals import REWARD_FREE_MONTH, ReferralService

router = APIRouter()


class ApplyRewardRequest(RequestModel):
    reward_type: str = REWARD_FREE_MONTH


@router.post("", response_model=ApiResponse)
async def get_or_create_referral_code(
    current_user: dict = Depends(get_current_user),
    referrals: ReferralService = Depends(get_referral_service),
) -> ApiResponse:
    """The caller's referral code, created on first request."""
    return ApiResponse.success_response(referrals.create(current_user["uid"]))


@router.get("/validate/{code}", response_model=ApiResponse)
async def validate_code(
    code: str,
    referrals: ReferralService = Depends(get_referral_service),
) -> ApiResponse:
    return ApiResponse.success_response({"valid": referrals.validate(code)})


@router.get("/code/{code}", response_model=ApiResponse)
async def get_by_code(
    code: str,
    current_user: dict = Depends(get_current_user),
    referrals: ReferralService = Depends(get_referral_service),
) -> ApiResponse:
    referral = referrals.get_by_code(code)
    if referral is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Referral not found")
    return ApiResponse.success_response(referral)


@router.get("/me", response_model=ApiResponse)
async def my_referrals(
    current_user: dict = Depends(get_current_user),
    referrals: ReferralService = Depends(get_referral_service),
) -> ApiResponse:
    """Completed uses of the caller's code, latest first."""
    return ApiResponse.success_response(referrals.get_user_referrals(current_user["uid"]))


@router.get("/stats", response_model=ApiResponse)
async def referral_stats(
    current_user: dict = Depends(get_current_user),
    referrals: ReferralService = Depends(get_referral_service),
) -> ApiResponse:
    return ApiResponse.success_response(referrals.get_stats(current_user["uid"]))


@router.post("/rewards/apply", response_model=ApiResponse)
async def apply_reward(
    request: ApplyRewardRequest,
    current_user: dict = Depends(get_current_user),
    referrals: ReferralService = Depends(get_referral_service),
) -> ApiResponse:
    rewards = referrals.apply_reward(current_user["uid"], request.reward_type)
    return ApiResponse.success_response(rewards, "Reward applied")

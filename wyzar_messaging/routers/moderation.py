from typing import List

from fastapi import APIRouter, Depends

from wyzar_messaging.database.connection import mongo_db_dependency
from wyzar_messaging.repositories.report_repository import ReportRepository
from wyzar_messaging.repositories.user_repository import UserRepository
from wyzar_messaging.schemas.conversation import UserSummary
from wyzar_messaging.schemas.report import ReportCreate, ReportPublic
from wyzar_messaging.services.moderation_service import ModerationService
from wyzar_messaging.utils.dependencies import get_current_user

router = APIRouter(prefix="/messages", tags=["moderation"])

def get_moderation_service(db = Depends(mongo_db_dependency)):
    return ModerationService(UserRepository(db), ReportRepository(db))

@router.post("/block/{user_id}")
async def block_user(user_id: str, current_user: dict = Depends(get_current_user), service: ModerationService = Depends(get_moderation_service)):
    await service.block_user(current_user["_id"], user_id)
    return {"msg": "User blocked successfully"}

@router.post("/unblock/{user_id}")
async def unblock_user(user_id: str, current_user: dict = Depends(get_current_user), service: ModerationService = Depends(get_moderation_service)):
    await service.unblock_user(current_user["_id"], user_id)
    return {"msg": "User unblocked successfully"}

@router.get("/blocked-users", response_model=List[UserSummary])
async def blocked_users(current_user: dict = Depends(get_current_user), service: ModerationService = Depends(get_moderation_service)):
    return await service.list_blocked(current_user["_id"])

@router.get("/is-blocked/{user_id}")
async def is_blocked(user_id: str, current_user: dict = Depends(get_current_user), service: ModerationService = Depends(get_moderation_service)):
    return {"is_blocked": await service.is_blocked(current_user["_id"], user_id)}

@router.post("/report")
async def report_user(payload: ReportCreate, current_user: dict = Depends(get_current_user), service: ModerationService = Depends(get_moderation_service)):
    report_id = await service.report_user(
        current_user["_id"],
        payload.reported_user_id,
        payload.reason,
        description=payload.description,
        message_id=payload.message_id,
        conversation_id=payload.conversation_id,
    )
    return {"msg": "Report submitted successfully", "id": report_id}

@router.get("/my-reports", response_model=List[ReportPublic])
async def my_reports(current_user: dict = Depends(get_current_user), service: ModerationService = Depends(get_moderation_service)):
    return await service.list_reports(current_user["_id"])

import logging
from typing import Any, Dict, List, Optional

from wyzar_messaging.errors import NotFoundError, ValidationError
from wyzar_messaging.repositories.report_repository import ReportRepository
from wyzar_messaging.repositories.user_repository import UserRepository
from wyzar_messaging.utils.ids import canonical_id


logger = logging.getLogger(__name__)


class ModerationService:
    """Block-lists and user reports raised from the inbox."""

    def __init__(self, user_repo: UserRepository, report_repo: ReportRepository) -> None:
        self.user_repo = user_repo
        self.report_repo = report_repo

    async def _require_other_user(self, user_id: str, other_id: str, action: str) -> None:
        if user_id == other_id:
            raise ValidationError(f"Cannot {action} yourself")
        if await self.user_repo.get_user_by_id(other_id) is None:
            raise NotFoundError("User not found")

    async def block_user(self, user_id: str, target_id: str) -> bool:
        target_id = canonical_id(target_id)
        await self._require_other_user(user_id, target_id, "block")
        changed = await self.user_repo.add_blocked_user(user_id, target_id)
        if changed:
            logger.info("User %s blocked %s", user_id, target_id)
        return changed

    async def unblock_user(self, user_id: str, target_id: str) -> bool:
        target_id = canonical_id(target_id)
        changed = await self.user_repo.remove_blocked_user(user_id, target_id)
        if changed:
            logger.info("User %s unblocked %s", user_id, target_id)
        return changed

    async def list_blocked(self, user_id: str) -> List[Dict[str, Any]]:
        blocked = await self.user_repo.get_blocked_users(user_id)
        users = await self.user_repo.get_public_users(blocked)
        return [users[b] for b in blocked if b in users]

    async def is_blocked(self, user_id: str, other_id: str) -> bool:
        return await self.user_repo.has_blocked(user_id, canonical_id(other_id))

    async def report_user(
        self,
        reporter_id: str,
        reported_user_id: str,
        reason: str,
        description: Optional[str] = None,
        message_id: Optional[str] = None,
        conversation_id: Optional[str] = None,
    ) -> str:
        if not reason or not reason.strip():
            raise ValidationError("A reason is required")
        reported_user_id = canonical_id(reported_user_id)
        message_id, conversation_id = canonical_id(message_id), canonical_id(conversation_id)
        await self._require_other_user(reporter_id, reported_user_id, "report")
        report_id = await self.report_repo.create_report(
            reporter_id, reported_user_id, reason.strip(), description, message_id, conversation_id
        )
        logger.info("Report %s filed by %s against %s", report_id, reporter_id, reported_user_id)
        return report_id

    async def list_reports(self, reporter_id: str) -> List[Dict[str, Any]]:
        return await self.report_repo.list_by_reporter(reporter_id)

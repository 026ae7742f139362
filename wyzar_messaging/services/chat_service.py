import logging
from typing import Any, Dict, List, Optional, Tuple

from wyzar_messaging.config import Settings, get_settings
from wyzar_messaging.errors import ForbiddenError, NotFoundError, ValidationError
from wyzar_messaging.repositories.conversation_repository import ConversationRepository
from wyzar_messaging.repositories.message_repository import MessageRepository
from wyzar_messaging.repositories.product_repository import ProductRepository
from wyzar_messaging.repositories.user_repository import UserRepository
from wyzar_messaging.utils.ids import canonical_id


logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 200
SEARCH_MIN_LENGTH = 2

MESSAGE_TEMPLATES: List[Dict[str, Any]] = [
    {"id": 1, "title": "Greeting", "message": "Hello! Thank you for your interest in our product. How can I help you today?"},
    {"id": 2, "title": "Availability", "message": "Yes, this item is currently in stock and ready to ship."},
    {
        "id": 3,
        "title": "Shipping",
        "message": "We offer fast shipping across Zimbabwe. Delivery typically takes 2-3 business days within Harare and 3-5 days for other regions.",
    },
    {"id": 4, "title": "Payment", "message": "We accept Paynow, EcoCash, and cash on delivery for your convenience."},
    {"id": 5, "title": "Discount", "message": "Thank you for your interest! I can offer you a special discount if you purchase multiple items."},
    {
        "id": 6,
        "title": "Product Details",
        "message": "Let me provide you with more details about this product. What specific information would you like to know?",
    },
    {
        "id": 7,
        "title": "Returns",
        "message": "We have a 7-day return policy. If you're not satisfied with the product, you can return it for a full refund or exchange.",
    },
    {
        "id": 8,
        "title": "Thank You",
        "message": "Thank you for your purchase! Your order will be processed shortly. Feel free to contact me if you have any questions.",
    },
]


def message_preview(body: str, attachments: List[str]) -> str:
    if body:
        return body[:PREVIEW_LENGTH]
    count = len(attachments)
    return f"Sent {count} image{'s' if count > 1 else ''}"


class ChatService:

    def __init__(
        self,
        message_repo: MessageRepository,
        conversation_repo: ConversationRepository,
        user_repo: UserRepository,
        product_repo: ProductRepository,
        settings: Optional[Settings] = None,
    ) -> None:
        self._message_repo = message_repo
        self._conversation_repo = conversation_repo
        self._user_repo = user_repo
        self._product_repo = product_repo
        self._settings = settings or get_settings()

    def clean_body(self, body: Optional[str], attachments: Optional[List[str]] = None) -> str:
        """Trim ``body`` and enforce the size rules; returns the text to store."""
        text = (body or "").strip()
        attachments = attachments or []
        if not text and not attachments:
            raise ValidationError("Message or attachments are required")
        if len(text) > self._settings.message_max_length:
            raise ValidationError(f"Message cannot exceed {self._settings.message_max_length} characters")
        if len(attachments) > self._settings.message_max_attachments:
            raise ValidationError(f"At most {self._settings.message_max_attachments} attachments per message")
        if any(not isinstance(url, str) or not url.strip() for url in attachments):
            raise ValidationError("Attachment URLs cannot be empty")
        return text

    async def get_or_create_conversation(self, user_a: str, user_b: str, product_id: Optional[str] = None) -> Dict[str, Any]:
        user_a, user_b, product_id = canonical_id(user_a), canonical_id(user_b), canonical_id(product_id)
        if user_a == user_b:
            raise ValidationError("Cannot start a conversation with yourself")
        return await self._conversation_repo.get_or_create(user_a, user_b, product_id)

    async def append_message(
        self,
        conversation_id: str,
        sender_id: str,
        receiver_id: str,
        body: Optional[str],
        attachments: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        sender_id, receiver_id = canonical_id(sender_id), canonical_id(receiver_id)
        text = self.clean_body(body, attachments)
        if sender_id == receiver_id:
            raise ValidationError("Cannot send message to yourself")
        convo = await self._conversation_repo.get_by_id(conversation_id)
        if convo is None:
            raise NotFoundError("Conversation not found")
        if not {sender_id, receiver_id} <= set(convo.get("participants", [])):
            raise ValidationError("Conversation does not include both users")

        saved = await self._message_repo.save_message(
            conversation_id=convo["_id"],
            sender_id=sender_id,
            receiver_id=receiver_id,
            body=text,
            attachments=attachments,
        )
        await self._conversation_repo.update_on_new_message(
            convo["_id"],
            saved["_id"],
            message_preview(text, saved["attachments"]),
            receiver_id,
            saved["created_at"],
        )
        logger.info("Message %s stored in conversation %s", saved["_id"], convo["_id"])
        return saved

    async def send_message(
        self,
        sender_id: str,
        receiver_id: str,
        body: Optional[str],
        product_id: Optional[str] = None,
        attachments: Optional[List[str]] = None,
    ) -> Tuple[Dict[str, Any], str]:
        # ids arrive in whatever hex case the client used
        sender_id, receiver_id = canonical_id(sender_id), canonical_id(receiver_id)
        product_id = canonical_id(product_id) or None
        if sender_id == receiver_id:
            raise ValidationError("Cannot send message to yourself")
        if await self._user_repo.get_user_by_id(receiver_id) is None:
            raise NotFoundError("Receiver not found")
        if product_id and await self._product_repo.get_product_by_id(product_id) is None:
            raise NotFoundError("Product not found")
        if await self._user_repo.has_blocked(receiver_id, sender_id) or await self._user_repo.has_blocked(sender_id, receiver_id):
            logger.info("Blocked message from %s to %s", sender_id, receiver_id)
            raise ForbiddenError("You cannot message this user")
        self.clean_body(body, attachments)

        convo = await self.get_or_create_conversation(sender_id, receiver_id, product_id)
        saved = await self.append_message(convo["_id"], sender_id, receiver_id, body, attachments)
        return saved, convo["_id"]

    async def require_participant(self, conversation_id: str, user_id: str) -> Dict[str, Any]:
        convo = await self._conversation_repo.get_by_id(conversation_id)
        if convo is None:
            raise NotFoundError("Conversation not found")
        if user_id not in convo.get("participants", []):
            raise ForbiddenError("Access denied")
        return convo

    async def get_history(
        self,
        conversation_id: str,
        user_id: str,
        limit: int = 50,
        cursor: Optional[str] = None,
        mark_read: bool = False,
    ) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        await self.require_participant(conversation_id, user_id)
        messages, next_cursor = await self._message_repo.get_messages_by_conversation(conversation_id, limit=limit, cursor=cursor)
        if mark_read:
            await self.mark_read(conversation_id, user_id)
        return messages, next_cursor

    async def mark_read(self, conversation_id: str, user_id: str) -> int:
        await self.require_participant(conversation_id, user_id)
        modified = await self._message_repo.mark_read(conversation_id, user_id)
        await self._conversation_repo.reset_unread(conversation_id, user_id)
        return modified

    async def list_conversations(self, user_id: str, limit: int = 20, cursor: Optional[str] = None) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        convos, next_cursor = await self._conversation_repo.list_for_user(user_id, limit=limit, cursor=cursor)
        other_ids = [self._other_participant(c, user_id) for c in convos]
        users = await self._user_repo.get_public_users([u for u in other_ids if u])
        products = await self._product_repo.get_summaries([c["product_id"] for c in convos if c.get("product_id")])

        items = []
        for convo, other_id in zip(convos, other_ids):
            items.append({
                "id": convo["_id"],
                "other_user": users.get(other_id) or ({"_id": other_id} if other_id else None),
                "product": products.get(convo.get("product_id")) if convo.get("product_id") else None,
                "last_message_id": convo.get("last_message_id"),
                "last_message_preview": convo.get("last_message_preview"),
                "last_message_at": convo["last_message_at"],
                "unread_count": int((convo.get("unread_counts") or {}).get(user_id, 0)),
                "created_at": convo.get("created_at"),
            })
        return items, next_cursor

    async def total_unread(self, user_id: str) -> int:
        return await self._conversation_repo.total_unread(user_id)

    async def search_messages(self, user_id: str, query: str, conversation_id: Optional[str] = None) -> List[Dict[str, Any]]:
        text = (query or "").strip()
        if len(text) < SEARCH_MIN_LENGTH:
            raise ValidationError(f"Search query must be at least {SEARCH_MIN_LENGTH} characters")
        if conversation_id:
            await self.require_participant(conversation_id, user_id)
        return await self._message_repo.search(user_id, text, conversation_id)

    def get_templates(self) -> List[Dict[str, Any]]:
        return [dict(t) for t in MESSAGE_TEMPLATES]

    @staticmethod
    def _other_participant(convo: Dict[str, Any], user_id: str) -> Optional[str]:
        return next((p for p in convo.get("participants", []) if p != user_id), None)

"""User-facing error messages for the messaging surfaces."""

import logging
from typing import Optional

from dm_threads.config.settings import Config
from dm_threads.domain.exceptions import (
    AccessDeniedError,
    ConversationNotFoundError,
    SelfConversationForbiddenError,
    TransientNetworkError,
)

logger = logging.getLogger(__name__)

ERROR_MESSAGES: dict[str, dict[str, str]] = {
    "ja": {
        "conversation_not_found": "このスレッドは存在しないか、削除されました",
        "self_conversation_forbidden": "自分自身とのメッセージスレッドは作成できません",
        "fetch_failed": "スレッドの取得に失敗しました",
        "threads_fetch_failed": "スレッドの取得に失敗しました",
        "messages_fetch_failed": "メッセージの取得に失敗しました",
        "send_failed": "メッセージの送信に失敗しました",
        "create_failed": "スレッドの作成に失敗しました",
        "access_denied": "このスレッドにアクセスする権限がありません",
        "unexpected": "予期しないエラーが発生しました",
    },
    "en": {
        "conversation_not_found": "This thread does not exist or has been deleted",
        "self_conversation_forbidden": "You cannot start a message thread with yourself",
        "fetch_failed": "Failed to load the thread",
        "threads_fetch_failed": "Failed to load threads",
        "messages_fetch_failed": "Failed to load messages",
        "send_failed": "Failed to send the message",
        "create_failed": "Failed to create the thread",
        "access_denied": "You do not have access to this thread",
        "unexpected": "An unexpected error occurred",
    },
}


def _catalog(locale: Optional[str]) -> dict[str, str]:
    if locale in ERROR_MESSAGES:
        return ERROR_MESSAGES[locale]
    return ERROR_MESSAGES.get(Config.DEFAULT_LOCALE, ERROR_MESSAGES["ja"])


def message_for(key: str, locale: Optional[str] = None) -> str:
    catalog = _catalog(locale)
    return catalog.get(key, catalog["unexpected"])


def localized_error(
    exc: BaseException, locale: Optional[str] = None, fallback_key: str = "unexpected"
) -> str:
    """
    Map an exception to the message shown in place of the active thread pane.

    fallback_key picks the message for failures that are not one of the
    known domain errors (e.g. "messages_fetch_failed" while loading messages).
    """
    if isinstance(exc, ConversationNotFoundError):
        key = "conversation_not_found"
    elif isinstance(exc, SelfConversationForbiddenError):
        key = "self_conversation_forbidden"
    elif isinstance(exc, TransientNetworkError):
        key = "fetch_failed" if fallback_key == "unexpected" else fallback_key
    elif isinstance(exc, AccessDeniedError):
        key = "access_denied"
    else:
        logger.debug(f"[Localization] No dedicated message for {type(exc).__name__}")
        key = fallback_key
    return message_for(key, locale)

"""
Сервис для создания inline-клавиатур лобби и пространства команды.
"""

from typing import List
from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton

from ..types import ALLOWED_NEEDS

# callback_data
JOIN_TEAM = "join_team"
CREATE_TEAM = "create_team"
NEED_PREFIX = "need:"
UPDATE_NEED_PREFIX = "need_update:"
SWITCH_TO_MEMBER = "switch_to_member"
SWITCH_TO_LEADER = "switch_to_leader"
CANCEL_SWITCH = "cancel_switch"
UPDATE_RECRUITMENT = "update_recruitment"
TEAM_CONFIRM = "team_confirm"
TEAM_CLOSE = "team_close"

NEED_LABELS = {
    1: "Нужен 1 участник",
    2: "Нужно 2 участника",
}


class KeyboardService:
    """Фабрика клавиатур для всех экранов бота."""

    @staticmethod
    def from_pairs(text_callback_pairs: List[tuple]) -> InlineKeyboardMarkup:
        """Создает клавиатуру из пар (текст, callback), по кнопке в ряд."""
        buttons = [
            [InlineKeyboardButton(text=text, callback_data=callback)]
            for text, callback in text_callback_pairs
        ]
        return InlineKeyboardMarkup(inline_keyboard=buttons)

    @staticmethod
    def lobby() -> InlineKeyboardMarkup:
        """Главное меню: вступить в команду или собрать свою."""
        return InlineKeyboardMarkup(inline_keyboard=[[
            InlineKeyboardButton(text="🙋 Вступить в команду", callback_data=JOIN_TEAM),
            InlineKeyboardButton(text="👑 Собрать команду", callback_data=CREATE_TEAM),
        ]])

    @staticmethod
    def need_selector(prefix: str = NEED_PREFIX) -> InlineKeyboardMarkup:
        """Выбор, сколько ещё участников нужно лидеру."""
        return KeyboardService.from_pairs([
            (NEED_LABELS[n], f"{prefix}{n}") for n in ALLOWED_NEEDS
        ])

    @staticmethod
    def confirm_switch_to_member() -> InlineKeyboardMarkup:
        return InlineKeyboardMarkup(inline_keyboard=[[
            InlineKeyboardButton(text="Стать участником", callback_data=SWITCH_TO_MEMBER),
            InlineKeyboardButton(text="Остаться лидером", callback_data=CANCEL_SWITCH),
        ]])

    @staticmethod
    def confirm_switch_to_leader() -> InlineKeyboardMarkup:
        return InlineKeyboardMarkup(inline_keyboard=[[
            InlineKeyboardButton(text="Стать лидером", callback_data=SWITCH_TO_LEADER),
            InlineKeyboardButton(text="Остаться участником", callback_data=CANCEL_SWITCH),
        ]])

    @staticmethod
    def leader_status() -> InlineKeyboardMarkup:
        return KeyboardService.from_pairs([("✏️ Изменить набор", UPDATE_RECRUITMENT)])

    @staticmethod
    def team_space() -> InlineKeyboardMarkup:
        """Панель в топике команды."""
        return InlineKeyboardMarkup(inline_keyboard=[[
            InlineKeyboardButton(text="✅ Подтвердить команду", callback_data=TEAM_CONFIRM),
            InlineKeyboardButton(text="🔒 Закрыть топик", callback_data=TEAM_CLOSE),
        ]])


# Глобальный экземпляр сервиса клавиатур
kb = KeyboardService()

"""
Исключения предметной области. Ни одно из них не должно останавливать бота.
"""

from typing import Iterable, List


class TeamFinderError(Exception):
    """Базовая ошибка комплектовщика."""


class InvalidSelection(TeamFinderError):
    """Количество участников вне допустимого набора."""

    def __init__(self, value):
        self.value = value
        super().__init__(f"Недопустимое количество участников: {value!r}")


class UnauthorizedAdminAction(TeamFinderError):
    """Админское действие от пользователя, который не является оператором."""

    def __init__(self, user_id: int, action: str):
        self.user_id = user_id
        self.action = action
        super().__init__(f"Пользователь {user_id} не может выполнить {action}")


class AffiliationConflict(TeamFinderError):
    """Попытка поставить пользователя сразу в обе очереди."""

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"Пользователь {user_id} уже стоит в другой очереди")


class PersistenceFailure(TeamFinderError):
    """Хранилище недоступно или запись не удалась."""


class NotificationFailure(TeamFinderError):
    """Не удалось создать пространство команды или добавить участников."""

    def __init__(self, message: str, failed_user_ids: Iterable[int] = ()):
        self.failed_user_ids: List[int] = list(failed_user_ids)
        super().__init__(message)

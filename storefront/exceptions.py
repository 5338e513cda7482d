# storefront/exceptions.py

"""
Доменные ошибки витрины.

Все сбои удаленных вызовов на границе репозиториев и SessionReconciler
приводятся к одному из этих видов; выше этой границы ничего "сырого"
(httpx.*) не пробрасывается.
"""


class StorefrontError(Exception):
    """Базовая ошибка витрины."""

    error_code: str = "STOREFRONT_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NetworkUnavailable(StorefrontError):
    """Удаленный вызов не удался или не уложился в таймаут."""

    error_code = "NETWORK_UNAVAILABLE"


class OutOfStock(StorefrontError):
    """Добавление в корзину отклонено: у выбранной вариации нет остатка."""

    error_code = "OUT_OF_STOCK"

    def __init__(self, message: str, product_id: str | None = None, variant_label: str | None = None):
        self.product_id = product_id
        self.variant_label = variant_label
        super().__init__(message)


class NotFound(StorefrontError):
    """Строка профиля/конфигурации/товара отсутствует."""

    error_code = "NOT_FOUND"


class ValidationFailed(StorefrontError):
    """Сохранение отклонено на границе записи (например, товар без вариаций)."""

    error_code = "VALIDATION_FAILED"


class PermissionDenied(StorefrontError):
    """Удаленное хранилище отказало в доступе (401/403): токен истек или прав не хватает."""

    error_code = "PERMISSION_DENIED"

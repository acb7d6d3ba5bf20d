# storefront/core/errors.py
# Ошибки приложения. Все восстановимые: обработчики в main.py превращают их
# в JSON {"error": ..., "details": [...]} с нужным HTTP-статусом.
from typing import List, Optional, Sequence


class StorefrontError(Exception):
    status_code: int = 400
    default_message: str = "Request failed"

    def __init__(self, message: Optional[str] = None, details: Optional[Sequence[str]] = None):
        self.message = message or self.default_message
        self.details: List[str] = list(details or [])
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class AuthorizationError(StorefrontError):
    """Изменение корзины без авторизованного покупателя (или загрузка без продавца)."""
    status_code = 403
    default_message = "You must be signed in as a buyer"


class NotFoundError(StorefrontError):
    status_code = 404
    default_message = "Not found"


class FormatError(StorefrontError):
    default_message = "Please select a valid CSV file"


class SizeError(StorefrontError):
    status_code = 413
    default_message = "File size must be less than 5MB"


class SchemaError(StorefrontError):
    def __init__(self, missing: Sequence[str]):
        self.missing = list(missing)
        super().__init__(f"Missing required columns: {', '.join(self.missing)}")


class RowValidationError(StorefrontError):
    status_code = 422

    def __init__(self, errors: Sequence[str]):
        super().__init__("Validation failed", details=errors)

    @property
    def errors(self) -> List[str]:
        return self.details


class SubmissionError(StorefrontError):
    default_message = "Upload failed"


class BackendError(StorefrontError):
    status_code = 500
    default_message = "Backend request failed"

# storefront/services/bulk_upload.py
# Проверка и отправка кандидатов из CSV: редактирование строк (просмотр/правка),
# повторная валидация всего списка и одна атомарная вставка в products.
import logging
from typing import Any, Callable, Dict, List, Optional

from starlette.concurrency import run_in_threadpool

from storefront.core.errors import AuthorizationError, BackendError, SubmissionError
from storefront.services import csv_import
from storefront.services.csv_import import CsvProductRow

logger = logging.getLogger(__name__)

UploadListener = Callable[[List[Any]], None]


class BulkUploadSession:
    """
    Список кандидатов одной сессии загрузки.

    Отправка не повторяется автоматически; пока она идёт, вторая
    отправка отклоняется (флаг submitting).
    """

    def __init__(self, backend, rows: Optional[List[CsvProductRow]] = None):
        self.backend = backend
        self._rows: List[CsvProductRow] = list(rows or [])
        self.submitting = False
        self._listeners: List[UploadListener] = []

    @property
    def rows(self) -> List[CsvProductRow]:
        return list(self._rows)

    def on_uploaded(self, listener: UploadListener) -> None:
        self._listeners.append(listener)

    # ---------------- loading ----------------

    def load_file(self, filename: str, content: bytes) -> List[CsvProductRow]:
        rows = csv_import.read_csv_upload(filename, content)
        self._rows = rows
        logger.info(f"Parsed {len(rows)} product(s) from {filename}")
        return self.rows

    def load_text(self, text: str) -> List[CsvProductRow]:
        self._rows = csv_import.parse_csv(text)
        return self.rows

    def reset(self) -> None:
        self._rows = []

    # ---------------- row editing ----------------

    def get_row(self, row_id: str) -> CsvProductRow:
        for row in self._rows:
            if row.id == row_id:
                return row
        raise KeyError(row_id)

    def begin_edit(self, row_id: str) -> CsvProductRow:
        row = self.get_row(row_id)
        if not row.is_editing:
            row.original_data = row.snapshot()
            row.is_editing = True
        return row

    def update_field(self, row_id: str, field: str, value) -> CsvProductRow:
        row = self.get_row(row_id)
        if not row.is_editing:
            raise ValueError(f"Row {row_id} is not being edited")
        if field not in csv_import.EDITABLE_FIELDS:
            raise ValueError(f"Unknown field: {field}")
        if field == "price":
            value = csv_import.to_price(value)
        elif field == "stock":
            value = csv_import.to_stock(str(value))
        else:
            value = "" if value is None else str(value)
        setattr(row, field, value)
        return row

    def save(self, row_id: str) -> CsvProductRow:
        row = self.get_row(row_id)
        row.is_editing = False
        row.original_data = None
        return row

    def cancel(self, row_id: str) -> CsvProductRow:
        row = self.get_row(row_id)
        if row.original_data is not None:
            row.restore(row.original_data)
        row.is_editing = False
        row.original_data = None
        return row

    def delete(self, row_id: str) -> None:
        self._rows = [row for row in self._rows if row.id != row_id]

    # ---------------- submission ----------------

    def validate(self) -> List[str]:
        return csv_import.validate_rows(self._rows)

    async def submit(self, seller_id) -> List[Any]:
        """
        Отправляет все строки одной пачкой от имени seller_id.
        Возвращает id созданных товаров; при ошибке строки остаются на месте.
        """
        if self.submitting:
            raise SubmissionError("An upload is already in progress")
        csv_import.ensure_valid(self._rows)
        if seller_id is None or seller_id == "":
            raise AuthorizationError("You must be logged in as a seller to upload products")

        records: List[Dict[str, Any]] = [dict(row.to_payload(), seller_id=seller_id) for row in self._rows]
        self.submitting = True
        try:
            created = await run_in_threadpool(self.backend.insert_batch, "products", records)
        except BackendError as e:
            logger.error(f"❌ Bulk upload for seller {seller_id} rejected: {e.message}")
            raise SubmissionError(f"Upload failed: {e.message}", details=e.details)
        finally:
            self.submitting = False

        ids = [record["id"] for record in created]
        self._rows = []
        logger.info(f"✅ Uploaded {len(ids)} product(s) for seller {seller_id}")
        for listener in list(self._listeners):
            listener(ids)
        return ids

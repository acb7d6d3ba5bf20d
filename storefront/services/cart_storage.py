# storefront/services/cart_storage.py
# Хранилище корзины по пользователю: load/save/clear.
# load никогда не падает на битых данных — пишет в лог и отдаёт пустую корзину.
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, List
from urllib.parse import quote

from sqlalchemy.exc import SQLAlchemyError

from storefront.core.config import settings
from storefront.db.session import SessionLocal
from storefront.models.cart import CartItem as CartItemRow
from storefront.services.cart import CartItem

logger = logging.getLogger(__name__)


class CartStorage:
    """Базовый интерфейс. Удалённая синхронизация подключается новой реализацией."""

    def load(self, user_id: str) -> List[CartItem]:
        raise NotImplementedError

    def save(self, user_id: str, items: List[CartItem]) -> None:
        raise NotImplementedError

    def clear(self, user_id: str) -> None:
        self.save(user_id, [])


def _decode_items(raw: str, user_id: str) -> List[CartItem]:
    try:
        data = json.loads(raw)
        if not isinstance(data, list):
            raise ValueError(f"expected a list, got {type(data).__name__}")
        return [CartItem.from_dict(entry) for entry in data]
    except (ValueError, KeyError, TypeError) as e:
        logger.warning(f"⚠️ Malformed saved cart for user {user_id}, starting empty: {e}")
        return []


class MemoryCartStorage(CartStorage):
    """JSON-строки в памяти процесса (для тестов и одноразовых сессий)."""

    def __init__(self):
        self.data: Dict[str, str] = {}

    def load(self, user_id: str) -> List[CartItem]:
        raw = self.data.get(str(user_id))
        if raw is None:
            return []
        return _decode_items(raw, user_id)

    def save(self, user_id: str, items: List[CartItem]) -> None:
        self.data[str(user_id)] = json.dumps([it.to_dict() for it in items])

    def clear(self, user_id: str) -> None:
        self.data.pop(str(user_id), None)


class JsonFileCartStorage(CartStorage):
    """Один JSON-файл на пользователя в каталоге CART_STORAGE_DIR."""

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def _path(self, user_id: str) -> Path:
        # quote без safe-символов однозначен: разные id дают разные имена файлов
        return self.directory / f"cart_{quote(str(user_id), safe='')}.json"

    def load(self, user_id: str) -> List[CartItem]:
        path = self._path(user_id)
        if not path.exists():
            return []
        try:
            raw = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"⚠️ Could not read cart file {path}: {e}")
            return []
        return _decode_items(raw, user_id)

    def save(self, user_id: str, items: List[CartItem]) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(user_id)
        fd, tmp = tempfile.mkstemp(dir=str(self.directory), suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump([it.to_dict() for it in items], f)
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.remove(tmp)
            raise

    def clear(self, user_id: str) -> None:
        path = self._path(user_id)
        if path.exists():
            path.unlink()


class SqlCartStorage(CartStorage):
    """Строки cart_items; save полностью заменяет корзину пользователя в одной транзакции."""

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    def load(self, user_id: str) -> List[CartItem]:
        items: List[CartItem] = []
        try:
            with self.session_factory() as db:
                rows = (
                    db.query(CartItemRow)
                    .filter(CartItemRow.user_id == str(user_id))
                    .order_by(CartItemRow.added_at, CartItemRow.id)
                    .all()
                )
                for row in rows:
                    if row.quantity is None or row.quantity < 1:
                        logger.warning(f"⚠️ Skipping cart row {row.id} with quantity {row.quantity}")
                        continue
                    items.append(CartItem(
                        product_id=row.product_id,
                        name=row.product_name,
                        price=float(row.product_price),
                        quantity=int(row.quantity),
                        description=row.product_description or "",
                        image_url=row.product_image,
                        category=row.product_category,
                        seller_id=row.seller_id,
                    ))
        except SQLAlchemyError as e:
            logger.error(f"❌ Failed to load cart for user {user_id}: {e}")
            return []
        return items

    def save(self, user_id: str, items: List[CartItem]) -> None:
        with self.session_factory() as db:
            try:
                db.query(CartItemRow).filter(CartItemRow.user_id == str(user_id)).delete()
                for it in items:
                    db.add(CartItemRow(
                        user_id=str(user_id),
                        product_id=it.product_id,
                        quantity=it.quantity,
                        product_name=it.name,
                        product_description=it.description,
                        product_price=it.price,
                        product_image=it.image_url,
                        product_category=it.category,
                        seller_id=it.seller_id,
                    ))
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                raise


def get_cart_storage() -> CartStorage:
    if settings.CART_STORAGE == "file":
        return JsonFileCartStorage(settings.CART_STORAGE_DIR)
    return SqlCartStorage()

# storefront/services/backend.py
# Реляционное хранилище за общим интерфейсом: query/insert/insert_batch/update/delete
# по имени коллекции плюс upload_file в файловый bucket.
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from storefront.core.config import settings
from storefront.core.errors import BackendError, NotFoundError
from storefront.db.session import SessionLocal
from storefront.models.cart import CartItem
from storefront.models.product import Product, ProductCategory
from storefront.models.user import User

logger = logging.getLogger(__name__)

COLLECTIONS = {
    "products": Product,
    "product_categories": ProductCategory,
    "cart_items": CartItem,
    "users": User,
}

BATCH_CHUNK_SIZE = 100


def row_to_dict(obj) -> Dict[str, Any]:
    data = {}
    for column in obj.__table__.columns:
        value = getattr(obj, column.name)
        if hasattr(value, "value"):
            value = value.value
        data[column.name] = value
    return data


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


class SqlBackend:
    def __init__(self, session_factory=SessionLocal, upload_dir: Optional[str] = None,
                 public_base_url: Optional[str] = None):
        self.session_factory = session_factory
        self.upload_dir = Path(upload_dir or settings.UPLOAD_DIR)
        self.public_base_url = (public_base_url or settings.PUBLIC_BASE_URL).rstrip("/")

    def _model(self, collection: str):
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise BackendError(f"Unknown collection: {collection}")

    def query(self, collection: str, filters: Optional[Dict[str, Any]] = None,
              order: Optional[str] = None, limit: Optional[int] = None,
              offset: int = 0) -> List[Dict[str, Any]]:
        """
        filters — равенство по колонкам; order — имя колонки, "-" в начале для убывания.
        """
        model = self._model(collection)
        try:
            with self.session_factory() as db:
                q = db.query(model)
                for key, value in (filters or {}).items():
                    q = q.filter(getattr(model, key) == value)
                if order:
                    column = getattr(model, order.lstrip("-"))
                    q = q.order_by(column.desc() if order.startswith("-") else column.asc())
                if offset:
                    q = q.offset(offset)
                if limit is not None:
                    q = q.limit(limit)
                return [row_to_dict(r) for r in q.all()]
        except SQLAlchemyError as e:
            logger.error(f"❌ Query on {collection} failed: {e}")
            raise BackendError(f"Failed to fetch {collection}", details=[str(e)])

    def get(self, collection: str, record_id) -> Dict[str, Any]:
        rows = self.query(collection, {"id": record_id}, limit=1)
        if not rows:
            raise NotFoundError(f"{collection} record {record_id} not found")
        return rows[0]

    def insert(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        return self.insert_batch(collection, [record])[0]

    def insert_batch(self, collection: str, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Все записи в одной транзакции: либо все созданы, либо ни одной."""
        model = self._model(collection)
        with self.session_factory() as db:
            try:
                if model is Product:
                    self._ensure_categories(db, {r["category"] for r in records if r.get("category")})
                created = []
                for start in range(0, len(records), BATCH_CHUNK_SIZE):
                    chunk = [model(**r) for r in records[start:start + BATCH_CHUNK_SIZE]]
                    db.add_all(chunk)
                    db.flush()
                    created.extend(chunk)
                db.commit()
                return [row_to_dict(obj) for obj in created]
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"❌ Batch insert into {collection} failed: {e}")
                raise BackendError(f"Failed to insert {collection}", details=[str(getattr(e, "orig", e))])

    def _ensure_categories(self, db, names) -> None:
        existing = {c.name for c in db.query(ProductCategory).filter(ProductCategory.name.in_(names)).all()}
        for name in sorted(set(names) - existing):
            db.add(ProductCategory(name=name, slug=slugify(name), description=f"{name} products"))
            logger.info(f"Created product category {name!r}")

    def update(self, collection: str, record_id, patch: Dict[str, Any]) -> None:
        model = self._model(collection)
        with self.session_factory() as db:
            try:
                obj = db.get(model, record_id)
                if obj is None:
                    raise NotFoundError(f"{collection} record {record_id} not found")
                for key, value in patch.items():
                    setattr(obj, key, value)
                if hasattr(obj, "updated_at"):
                    obj.updated_at = datetime.utcnow()
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                raise BackendError(f"Failed to update {collection}", details=[str(e)])

    def delete(self, collection: str, record_id) -> None:
        model = self._model(collection)
        with self.session_factory() as db:
            try:
                obj = db.get(model, record_id)
                if obj is None:
                    raise NotFoundError(f"{collection} record {record_id} not found")
                db.delete(obj)
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                raise BackendError(f"Failed to delete {collection}", details=[str(e)])

    def upload_file(self, bucket: str, path: str, data: bytes) -> str:
        root = (self.upload_dir / bucket).resolve()
        target = (root / path).resolve()
        if root not in target.parents:
            raise BackendError(f"Invalid file path: {path}")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        relative = target.relative_to(self.upload_dir.resolve()).as_posix()
        return f"{self.public_base_url}/uploads/{relative}"

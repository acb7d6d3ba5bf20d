# scripts/check_db.py
# Проверяет подключение к DATABASE_URL и наличие таблиц витрины и их колонок.
import sys

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import SQLAlchemyError

from storefront.core.config import settings
from storefront.db.base import Base

import storefront.models.user
import storefront.models.product
import storefront.models.cart


def check_schema(engine) -> list:
    """Список проблем: отсутствующие таблицы и колонки относительно моделей."""
    problems = []
    inspector = inspect(engine)
    existing = set(inspector.get_table_names())
    for table in Base.metadata.sorted_tables:
        if table.name not in existing:
            problems.append(f"missing table {table.name}")
            continue
        columns = {c["name"] for c in inspector.get_columns(table.name)}
        for column in table.columns:
            if column.name not in columns:
                problems.append(f"missing column {table.name}.{column.name}")
    return problems


def main() -> int:
    url = settings.DATABASE_URL
    print('Trying to connect to:', url)
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    engine = create_engine(url, connect_args=connect_args)
    try:
        with engine.connect() as conn:
            print('Connection OK, SELECT 1 ->', conn.execute(text("SELECT 1")).scalar())
        problems = check_schema(engine)
    except SQLAlchemyError as e:
        print('Connection failed:', e)
        return 1
    finally:
        engine.dispose()

    if problems:
        for p in problems:
            print('❌', p)
        return 1
    print('✅ Schema OK:', ', '.join(t.name for t in Base.metadata.sorted_tables))
    return 0


if __name__ == '__main__':
    sys.exit(main())

from sqlalchemy import create_engine, text

from scripts.check_db import check_schema, main


def test_schema_of_fresh_database_is_complete():
    assert main() == 0


def test_missing_tables_and_columns_are_reported(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'partial.db'}")
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE users (id INTEGER PRIMARY KEY, email VARCHAR)"))

    problems = check_schema(engine)
    engine.dispose()

    assert "missing column users.hashed_password" in problems
    assert "missing table products" in problems
    assert "missing table cart_items" in problems

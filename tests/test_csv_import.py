import pytest

from storefront.core.errors import FormatError, RowValidationError, SchemaError, SizeError
from storefront.services import csv_import
from storefront.services.csv_import import CsvProductRow

HEADER = "name,description,category,price,image_url,stock"
EXAMPLE_ROW = ('"Wireless Bluetooth Headphones","High-quality wireless headphones with noise cancellation",'
               '"Electronics",89.99,"https://example.com/img.jpg",50')


def make_row(n, **overrides):
    data = dict(
        id=f"temp-{n}",
        name=f"Product {n}",
        description="A perfectly fine description",
        category="Electronics",
        price=19.99,
        image_url="",
    )
    data.update(overrides)
    return CsvProductRow(**data)


def test_parses_documented_example_row():
    rows = csv_import.parse_csv(f"{HEADER}\n{EXAMPLE_ROW}\n")
    assert len(rows) == 1
    row = rows[0]
    assert row.name == "Wireless Bluetooth Headphones"
    assert row.description == "High-quality wireless headphones with noise cancellation"
    assert row.category == "Electronics"
    assert row.price == 89.99
    assert row.image_url == "https://example.com/img.jpg"
    assert row.stock == 50
    assert row.id.startswith("temp-")
    assert row.is_editing is False


def test_missing_price_column_is_a_schema_error():
    text = "name,description,category,image_url\n\"A\",\"Something long\",\"Fashion\",\"\"\n"
    with pytest.raises(SchemaError) as exc:
        csv_import.parse_csv(text)
    assert exc.value.missing == ["price"]
    assert "price" in exc.value.message


def test_headers_are_case_insensitive_and_order_independent():
    text = "PRICE, Image_URL ,Category,Description,Name\n12.5,,Books & Media,A long enough text,Novel\n"
    rows = csv_import.parse_csv(text)
    assert [(r.name, r.price, r.category, r.stock) for r in rows] == [("Novel", 12.5, "Books & Media", 10)]


def test_blank_lines_and_crlf_are_ignored():
    text = f"\r\n{HEADER}\r\n\r\n{EXAMPLE_ROW}\r\n   \r\n"
    assert len(csv_import.parse_csv(text)) == 1


def test_incomplete_rows_are_dropped_silently():
    text = "\n".join([
        HEADER,
        '"Good","Good description here","Fashion",10,"",5',
        '"","No name here at all","Fashion",10,"",5',
        '"No price","Description present","Fashion",abc,"",5',
        '"Zero","Description present","Fashion",0,"",5',
        '"Short"',
    ])
    rows = csv_import.parse_csv(text)
    assert [r.name for r in rows] == ["Good"]


def test_stock_defaults_to_ten():
    text = "\n".join([
        HEADER,
        '"A","Description one","Fashion",10,"",',
        '"B","Description two","Fashion",10,"",lots',
        '"C","Description three","Fashion",10,"",-4',
    ])
    assert [r.stock for r in csv_import.parse_csv(text)] == [10, 10, 10]

    no_stock = "name,description,category,price,image_url\n'A','Description one','Fashion',10,''\n"
    rows = csv_import.parse_csv(no_stock)
    assert rows[0].stock == 10
    assert rows[0].name == "A"


def test_decimal_stock_is_truncated():
    text = "\n".join([
        HEADER,
        '"A","Description one","Fashion",10,"",5.0',
        '"B","Description two","Fashion",10,"",7.9',
        '"C","Description three","Fashion",10,"",inf',
    ])
    assert [r.stock for r in csv_import.parse_csv(text)] == [5, 7, 10]


def test_header_only_file_is_rejected():
    with pytest.raises(FormatError):
        csv_import.parse_csv(HEADER + "\n")
    with pytest.raises(SchemaError):
        csv_import.parse_csv("")


def test_file_checks_before_parsing():
    with pytest.raises(FormatError):
        csv_import.check_upload("products.xlsx", 10)
    with pytest.raises(SizeError):
        csv_import.check_upload("products.CSV", 5 * 1024 * 1024 + 1)
    csv_import.check_upload("PRODUCTS.CSV", 5 * 1024 * 1024)


def test_read_upload_rejects_non_utf8():
    with pytest.raises(FormatError):
        csv_import.read_csv_upload("p.csv", b"\xff\xfe\x00bad")


def test_validation_is_all_or_nothing():
    rows = [make_row(1), make_row(2, price=0), make_row(3)]
    errors = csv_import.validate_rows(rows)
    assert errors == ["Row 2: Price must be greater than 0"]
    with pytest.raises(RowValidationError) as exc:
        csv_import.ensure_valid(rows)
    assert exc.value.errors == errors


def test_validation_rules():
    rows = [
        make_row(1, name="ab"),
        make_row(2, description="short"),
        make_row(3, category="  "),
        make_row(4, price=1000000),
        make_row(5, image_url="not a url"),
        make_row(6, image_url="https://cdn.example.com/a.png"),
    ]
    assert csv_import.validate_rows(rows) == [
        "Row 1: Name must be at least 3 characters",
        "Row 2: Description must be at least 10 characters",
        "Row 3: Category is required",
        "Row 4: Price cannot exceed $999,999.99",
        "Row 5: Invalid image URL",
    ]


def test_non_finite_price_and_negative_stock_are_rejected():
    rows = [
        make_row(1, price=float("nan")),
        make_row(2, price=float("inf")),
        make_row(3, stock=-5),
        make_row(4, stock=0),
    ]
    assert csv_import.validate_rows(rows) == [
        "Row 1: Price must be greater than 0",
        "Row 2: Price must be greater than 0",
        "Row 3: Stock cannot be negative",
    ]


def test_category_names_are_matched_case_insensitively():
    assert csv_import.canonical_category(" home & garden ") == "Home & Garden"
    with pytest.raises(ValueError):
        csv_import.canonical_category("Groceries")


def test_empty_batch_is_invalid():
    assert csv_import.validate_rows([]) == ["No products to upload"]


def test_template_matches_the_format():
    template = csv_import.csv_template()
    assert template.splitlines()[0] == HEADER
    rows = csv_import.parse_csv(template)
    assert len(rows) == len(csv_import.TEMPLATE_ROWS)
    assert csv_import.validate_rows(rows) == []

# storefront/services/csv_import.py
# Разбор CSV для массовой загрузки товаров: проверка файла, заголовка, строк
# и валидация кандидатов перед отправкой.
#
# Парсер намеренно простой: строки режутся по запятой, у каждого поля снимается
# один слой кавычек. Запятые и кавычки внутри значений не поддерживаются.
import math
from dataclasses import dataclass, field, fields
from typing import Dict, List, Optional, Sequence

from pydantic import AnyUrl, TypeAdapter, ValidationError

from storefront.core.config import settings
from storefront.core.errors import FormatError, RowValidationError, SchemaError, SizeError

REQUIRED_COLUMNS = ("name", "description", "category", "price", "image_url")
OPTIONAL_COLUMNS = ("stock",)
DEFAULT_STOCK = 10
MAX_PRICE = 999999.99
MIN_NAME_LENGTH = 3
MIN_DESCRIPTION_LENGTH = 10

CATEGORIES = (
    "Electronics",
    "Fashion",
    "Home & Garden",
    "Sports & Outdoors",
    "Beauty & Health",
    "Books & Media",
    "Automotive",
    "Toys & Games",
)

EDITABLE_FIELDS = ("name", "description", "category", "price", "image_url", "stock")

_url_adapter = TypeAdapter(AnyUrl)


@dataclass
class CsvProductRow:
    id: str
    name: str
    description: str
    category: str
    price: float
    image_url: str = ""
    stock: int = DEFAULT_STOCK
    is_editing: bool = False
    original_data: Optional[Dict] = field(default=None, repr=False)

    def snapshot(self) -> Dict:
        return {name: getattr(self, name) for name in EDITABLE_FIELDS}

    def restore(self, data: Dict) -> None:
        for name in EDITABLE_FIELDS:
            setattr(self, name, data[name])

    def to_payload(self) -> Dict:
        return {
            "name": self.name.strip(),
            "description": self.description.strip(),
            "category": self.category.strip(),
            "price": float(self.price),
            "stock": int(self.stock),
            "image_url": self.image_url.strip() or None,
        }

    def to_dict(self) -> Dict:
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "original_data"}


def check_upload(filename: str, size: int) -> None:
    """Отклоняет файл до чтения: расширение .csv и размер не больше MAX_CSV_BYTES."""
    if not filename or not filename.lower().endswith(".csv"):
        raise FormatError("Please select a valid CSV file")
    if size > settings.MAX_CSV_BYTES:
        limit_mb = settings.MAX_CSV_BYTES / (1024 * 1024)
        raise SizeError(f"File size must be less than {limit_mb:g}MB")


def clean_field(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("\"", "'"):
        return value[1:-1]
    return value


def parse_header(line: str) -> List[str]:
    headers = [clean_field(h).lower() for h in line.split(",")]
    missing = [col for col in REQUIRED_COLUMNS if col not in headers]
    if missing:
        raise SchemaError(missing)
    return headers


def canonical_category(name: str) -> str:
    """Имя категории из CATEGORIES без учёта регистра; неизвестное — ValueError."""
    wanted = (name or "").strip().lower()
    for category in CATEGORIES:
        if category.lower() == wanted:
            return category
    raise ValueError(f"Unknown category: {name}. Choose one of: {', '.join(CATEGORIES)}")


def to_price(value: str) -> float:
    try:
        price = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(price) or math.isinf(price):
        return 0.0
    return price


def to_stock(value: Optional[str]) -> int:
    if value is None:
        return DEFAULT_STOCK
    try:
        stock = int(float(value))
    except (ValueError, OverflowError):
        return DEFAULT_STOCK
    return stock if stock >= 0 else DEFAULT_STOCK


def parse_csv(text: str) -> List[CsvProductRow]:
    """
    Разбирает содержимое CSV в список кандидатов.

    Первая непустая строка — заголовок. Строки без name/description/category
    или с ценой <= 0 молча отбрасываются: подробности даёт validate_rows.
    """
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        raise SchemaError(list(REQUIRED_COLUMNS))

    headers = parse_header(lines[0])
    if len(lines) < 2:
        raise FormatError("CSV file must have at least a header row and one data row")

    index = {name: headers.index(name) for name in REQUIRED_COLUMNS + OPTIONAL_COLUMNS if name in headers}

    def pick(values: List[str], column: str) -> Optional[str]:
        pos = index.get(column)
        if pos is None or pos >= len(values):
            return None
        return values[pos]

    rows: List[CsvProductRow] = []
    for line_no, line in enumerate(lines[1:], start=1):
        values = [clean_field(v) for v in line.split(",")]
        stock_raw = pick(values, "stock")
        row = CsvProductRow(
            id=f"temp-{line_no}",
            name=pick(values, "name") or "",
            description=pick(values, "description") or "",
            category=pick(values, "category") or "",
            price=to_price(pick(values, "price")),
            image_url=pick(values, "image_url") or "",
            stock=to_stock(stock_raw if stock_raw else None),
        )
        if row.name and row.description and row.category and row.price > 0:
            rows.append(row)
    return rows


def read_csv_upload(filename: str, content: bytes) -> List[CsvProductRow]:
    check_upload(filename, len(content))
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise FormatError("Failed to read the CSV file: expected UTF-8 text")
    return parse_csv(text)


def is_valid_url(url: str) -> bool:
    try:
        _url_adapter.validate_python(url)
    except ValidationError:
        return False
    return True


def row_errors(row: CsvProductRow) -> List[str]:
    errors: List[str] = []
    name = (row.name or "").strip()
    description = (row.description or "").strip()
    category = (row.category or "").strip()
    price = float(row.price or 0)

    if not name:
        errors.append("Name is required")
    if not description:
        errors.append("Description is required")
    if not category:
        errors.append("Category is required")
    if not math.isfinite(price) or price <= 0:
        errors.append("Price must be greater than 0")
    if row.image_url and not is_valid_url(row.image_url):
        errors.append("Invalid image URL")
    if len(name) < MIN_NAME_LENGTH:
        errors.append(f"Name must be at least {MIN_NAME_LENGTH} characters")
    if len(description) < MIN_DESCRIPTION_LENGTH:
        errors.append(f"Description must be at least {MIN_DESCRIPTION_LENGTH} characters")
    if math.isfinite(price) and price > MAX_PRICE:
        errors.append("Price cannot exceed $999,999.99")
    if row.stock is not None and int(row.stock) < 0:
        errors.append("Stock cannot be negative")
    return errors


def validate_rows(rows: Sequence[CsvProductRow]) -> List[str]:
    """Все ошибки по всем строкам с номером строки (с 1). Пустой список — можно отправлять."""
    if not rows:
        return ["No products to upload"]
    errors: List[str] = []
    for n, row in enumerate(rows, start=1):
        errors.extend(f"Row {n}: {err}" for err in row_errors(row))
    return errors


def ensure_valid(rows: Sequence[CsvProductRow]) -> None:
    errors = validate_rows(rows)
    if errors:
        raise RowValidationError(errors)


TEMPLATE_ROWS = (
    ("Wireless Bluetooth Headphones", "High-quality wireless headphones with noise cancellation", "Electronics",
     "89.99", "https://images.unsplash.com/photo-1505740420928-5e560c06d30e?auto=format&fit=crop&w=500&q=80", "50"),
    ("Premium Running Shoes", "Comfortable running shoes for professional athletes", "Sports & Outdoors",
     "129.99", "https://images.unsplash.com/photo-1542291026-7eec264c27ff?auto=format&fit=crop&w=500&q=80", "25"),
    ("Organic Cotton T-Shirt", "Soft and comfortable organic cotton t-shirt", "Fashion",
     "24.99", "https://images.unsplash.com/photo-1521572163474-6864f9cf17ab?auto=format&fit=crop&w=500&q=80", "100"),
    ("Smart Home Security Camera", "WiFi-enabled security camera with night vision", "Electronics",
     "149.99", "https://images.unsplash.com/photo-1558618666-fcd25c85cd64?auto=format&fit=crop&w=500&q=80", "15"),
)


def csv_template() -> str:
    """Образец файла для скачивания: заголовок и несколько строк в ожидаемом формате."""
    lines = [",".join(REQUIRED_COLUMNS + OPTIONAL_COLUMNS)]
    for name, description, category, price, image_url, stock in TEMPLATE_ROWS:
        lines.append(f'"{name}","{description}","{category}",{price},"{image_url}",{stock}')
    return "\n".join(lines) + "\n"

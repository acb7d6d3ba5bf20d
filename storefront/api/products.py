# storefront/api/products.py
# Каталог товаров, CRUD продавца, загрузка картинок и массовая загрузка из CSV.
import logging
import os
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel, Field, field_validator
from starlette.concurrency import run_in_threadpool

from storefront.api.deps import get_backend
from storefront.core import security
from storefront.core.config import settings
from storefront.core.errors import AuthorizationError
from storefront.models.user import RoleEnum, User
from storefront.services import catalog, csv_import
from storefront.services.backend import SqlBackend
from storefront.services.bulk_upload import BulkUploadSession
from storefront.services.csv_import import CsvProductRow

logger = logging.getLogger(__name__)

router = APIRouter()

require_seller = security.require_role(RoleEnum.seller.value)

IMAGE_BUCKET = "product-images"


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    price: float = Field(..., ge=0.01, le=csv_import.MAX_PRICE, allow_inf_nan=False)
    stock: int = Field(csv_import.DEFAULT_STOCK, ge=0)
    image_url: Optional[str] = None

    @field_validator("category")
    @classmethod
    def _known_category(cls, v: str) -> str:
        return csv_import.canonical_category(v)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, ge=0.01, le=csv_import.MAX_PRICE, allow_inf_nan=False)
    stock: Optional[int] = Field(None, ge=0)
    image_url: Optional[str] = None

    @field_validator("category")
    @classmethod
    def _known_category(cls, v: Optional[str]) -> Optional[str]:
        return v if v is None else csv_import.canonical_category(v)


class CandidateRow(BaseModel):
    """Строка кандидата как её присылает клиент; проверяется validate_rows."""
    id: Optional[str] = None
    name: str = ""
    description: str = ""
    category: str = ""
    price: float = Field(0, allow_inf_nan=False)
    image_url: Optional[str] = ""
    stock: int = Field(csv_import.DEFAULT_STOCK, ge=0)


class BulkUploadRequest(BaseModel):
    products: List[CandidateRow]


@router.get("/")
def list_products(
    category: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    backend: SqlBackend = Depends(get_backend),
):
    filters = {"category": category} if category and category != "all" else None
    products = backend.query("products", filters, order="-created_at", limit=limit, offset=offset)
    return {"products": products, "total": len(products), "category": category or "all"}


@router.get("/browse")
def browse_products(
    q: str = "",
    category: List[str] = Query(default=[]),
    min_price: float = Query(0, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    sort: str = catalog.SORT_POPULARITY,
    page: int = 1,
    backend: SqlBackend = Depends(get_backend),
):
    query = catalog.ListingQuery(
        keyword=q,
        categories=category,
        price_range=(min_price, max_price if max_price is not None else catalog.ANY_PRICE[1]),
        sort_by=sort,
        page=page,
    )
    return catalog.browse(backend.query("products"), query).to_dict()


@router.get("/bulk-upload/template")
def bulk_upload_template():
    return Response(
        content=csv_import.csv_template(),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="product-template.csv"'},
    )


@router.post("/bulk-upload/parse")
async def bulk_upload_parse(file: UploadFile = File(...), seller: User = Depends(require_seller)):
    """Разбирает CSV и возвращает кандидатов для проверки; в базу ничего не пишет."""
    filename = file.filename or ""
    if file.size is not None:
        csv_import.check_upload(filename, file.size)
    # не больше лимита + 1 байт
    content = await file.read(settings.MAX_CSV_BYTES + 1)
    rows = csv_import.read_csv_upload(filename, content)
    return {
        "products": [row.to_dict() for row in rows],
        "count": len(rows),
        "message": f"Successfully parsed {len(rows)} products from CSV",
    }


@router.post("/bulk-upload")
async def bulk_upload(
    payload: BulkUploadRequest,
    seller: User = Depends(require_seller),
    backend: SqlBackend = Depends(get_backend),
):
    rows = [
        CsvProductRow(
            id=r.id or f"temp-{n}",
            name=r.name,
            description=r.description,
            category=r.category,
            price=r.price,
            image_url=r.image_url or "",
            stock=r.stock,
        )
        for n, r in enumerate(payload.products, start=1)
    ]
    session = BulkUploadSession(backend, rows)
    ids = await session.submit(seller.id)
    return {"message": "Products uploaded successfully", "count": len(ids), "ids": ids}


@router.get("/{product_id}")
def get_product(product_id: int, backend: SqlBackend = Depends(get_backend)):
    return backend.get("products", product_id)


@router.post("/")
def create_product(
    payload: ProductCreate,
    seller: User = Depends(require_seller),
    backend: SqlBackend = Depends(get_backend),
):
    product = backend.insert("products", dict(payload.model_dump(), seller_id=seller.id))
    logger.info(f"✅ Product added successfully: {product['id']}")
    return {"message": "Product created successfully", "product": product}


def _owned_product(backend: SqlBackend, product_id: int, seller: User) -> dict:
    product = backend.get("products", product_id)
    if product["seller_id"] != seller.id:
        raise AuthorizationError("You can only manage your own products")
    return product


@router.patch("/{product_id}")
def update_product(
    product_id: int,
    payload: ProductUpdate,
    seller: User = Depends(require_seller),
    backend: SqlBackend = Depends(get_backend),
):
    _owned_product(backend, product_id, seller)
    backend.update("products", product_id, payload.model_dump(exclude_unset=True))
    return {"message": "Product updated", "product": backend.get("products", product_id)}


@router.delete("/{product_id}")
def delete_product(
    product_id: int,
    seller: User = Depends(require_seller),
    backend: SqlBackend = Depends(get_backend),
):
    _owned_product(backend, product_id, seller)
    backend.delete("products", product_id)
    return {"message": "Product deleted", "id": product_id}


@router.post("/images")
async def upload_image(
    file: UploadFile = File(...),
    seller: User = Depends(require_seller),
    backend: SqlBackend = Depends(get_backend),
):
    if not (file.content_type or "").startswith("image/"):
        raise HTTPException(status_code=400, detail="Only image files can be uploaded")
    ext = os.path.splitext(file.filename or "")[1].lower() or ".bin"
    path = f"{seller.id}/{uuid.uuid4().hex}{ext}"
    data = await file.read()
    url = await run_in_threadpool(backend.upload_file, IMAGE_BUCKET, path, data)
    return {"url": url}

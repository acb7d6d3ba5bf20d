# storefront/models/cart.py
# Сохранённые позиции корзины: снимок товара + количество, по одной строке на (user_id, product_id).
from sqlalchemy import Column, Integer, String, Float, DateTime, Text, UniqueConstraint
from datetime import datetime
from storefront.db.base import Base

class CartItem(Base):
    __tablename__ = "cart_items"
    __table_args__ = (UniqueConstraint("user_id", "product_id", name="uq_cart_items_user_product"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    product_id = Column(String, nullable=False)
    quantity = Column(Integer, default=1, nullable=False)
    product_name = Column(String, nullable=False)
    product_description = Column(Text, nullable=True)
    product_price = Column(Float, nullable=False)
    product_image = Column(String, nullable=True)
    product_category = Column(String, nullable=True)
    seller_id = Column(String, nullable=True)
    added_at = Column(DateTime, default=datetime.utcnow)

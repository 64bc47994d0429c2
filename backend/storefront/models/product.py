from sqlalchemy import Column, Integer, String, Float, DateTime, func
from storefront.db.database import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    price = Column(Float, nullable=False)
    image_url = Column(String(2048))
    created_at = Column(DateTime, server_default=func.now())

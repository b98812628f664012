from datetime import datetime

from . import db
from .syncable import SyncableMixin


class Product(db.Model, SyncableMixin):
    __tablename__ = "products"

    id = db.Column(db.Integer, primary_key=True)

    code = db.Column(db.String(60), nullable=False, unique=True)
    barcode = db.Column(db.String(60), nullable=True, index=True)

    name = db.Column(db.String(160), nullable=False)
    description = db.Column(db.Text, nullable=True)

    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True)

    price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    # Precio de costo (para cálculo de ganancia)
    cost_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    stock = db.Column(db.Numeric(14, 3), nullable=False, default=0)
    min_stock = db.Column(db.Numeric(14, 3), nullable=False, default=0)
    unit = db.Column(db.String(10), nullable=False, default="UN")

    active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    category = db.relationship("Category", back_populates="products")

    def __repr__(self):
        return f"<Product {self.id} {self.code} {self.name}>"

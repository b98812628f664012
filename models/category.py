from datetime import datetime

from . import db
from .syncable import SyncableMixin


class Category(db.Model, SyncableMixin):
    __tablename__ = "categories"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)

    active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    products = db.relationship("Product", back_populates="category")

    def __repr__(self) -> str:
        return f"<Category {self.id} {self.name}>"

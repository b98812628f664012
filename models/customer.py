from datetime import datetime

from . import db
from .syncable import SyncableMixin


class Customer(db.Model, SyncableMixin):
    __tablename__ = "customers"

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(160), nullable=False)
    document = db.Column(db.String(30), nullable=True, index=True)

    phone = db.Column(db.String(40), nullable=True)
    email = db.Column(db.String(180), nullable=True)

    address = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(120), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    credit_limit = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.Index("ix_customers_name", "name"),
    )

    def __repr__(self):
        return f"<Customer {self.id} {self.name}>"

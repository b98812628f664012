from decimal import Decimal, InvalidOperation

from flask import Blueprint, jsonify, request
from flask_login import login_required

from models import db
from models.customer import Customer
from models.sync_queue import SyncOperation
from models.user import UserRole
from routes.guards import require_roles
from services.sync_queue import enqueue_model

customers_bp = Blueprint("customers", __name__, url_prefix="/customers")

_TEXT_FIELDS = ("document", "phone", "address", "city", "notes")


def _clean_str(value) -> str:
    return ("" if value is None else str(value)).strip()


def _to_decimal(val) -> Decimal:
    raw = _clean_str(val).replace(",", ".")
    try:
        d = Decimal(raw)
    except (InvalidOperation, ValueError):
        return Decimal("0.00")
    if d < 0:
        return Decimal("0.00")
    return d.quantize(Decimal("0.01"))


def _apply_customer_fields(customer: Customer, data: dict) -> None:
    if "name" in data:
        customer.name = _clean_str(data.get("name"))
    if "email" in data:
        customer.email = _clean_str(data.get("email")).lower() or None
    for field in _TEXT_FIELDS:
        if field in data:
            setattr(customer, field, _clean_str(data.get(field)) or None)
    if "credit_limit" in data:
        customer.credit_limit = _to_decimal(data.get("credit_limit"))


@customers_bp.get("/")
@login_required
def list_customers():
    q = _clean_str(request.args.get("q"))

    query = db.session.query(Customer).filter(Customer.active == True)
    if q:
        query = query.filter(Customer.name.ilike(f"%{q}%"))

    customers = query.order_by(Customer.name.asc()).limit(200).all()
    return jsonify([c.sync_payload() for c in customers])


@customers_bp.get("/search")
@login_required
def search():
    """
    Búsqueda rápida para el PDV (JSON):
    /customers/search?q=...
    """
    q = _clean_str(request.args.get("q"))
    if not q:
        return jsonify([])

    customers = (
        db.session.query(Customer)
        .filter(
            Customer.active == True,
            Customer.name.ilike(f"%{q}%") | Customer.document.ilike(f"%{q}%")
        )
        .order_by(Customer.name.asc())
        .limit(10)
        .all()
    )

    return jsonify([
        {
            "id": c.id,
            "name": c.name,
            "document": c.document,
            "phone": c.phone,
            "email": c.email,
        }
        for c in customers
    ])


@customers_bp.post("/")
@login_required
@require_roles(UserRole.ADMIN, UserRole.MANAGER, UserRole.CASHIER)
def create_customer():
    data = request.get_json(silent=True) or {}

    customer = Customer(active=True)
    _apply_customer_fields(customer, data)
    if not customer.name:
        return jsonify({"ok": False, "error": "Nombre del cliente es obligatorio."}), 400

    db.session.add(customer)
    db.session.flush()
    enqueue_model(db.session, customer, SyncOperation.INSERT)
    db.session.commit()

    return jsonify({"ok": True, "customer": customer.sync_payload()}), 201


@customers_bp.put("/<int:customer_id>")
@login_required
@require_roles(UserRole.ADMIN, UserRole.MANAGER, UserRole.CASHIER)
def update_customer(customer_id: int):
    customer = db.session.get(Customer, customer_id)
    if not customer:
        return jsonify({"ok": False, "error": "Cliente no encontrado."}), 404

    _apply_customer_fields(customer, request.get_json(silent=True) or {})
    if not customer.name:
        db.session.rollback()
        return jsonify({"ok": False, "error": "Nombre del cliente es obligatorio."}), 400

    db.session.flush()
    enqueue_model(db.session, customer, SyncOperation.UPDATE)
    db.session.commit()

    return jsonify({"ok": True, "customer": customer.sync_payload()})


@customers_bp.delete("/<int:customer_id>")
@login_required
@require_roles(UserRole.ADMIN, UserRole.MANAGER)
def delete_customer(customer_id: int):
    customer = db.session.get(Customer, customer_id)
    if not customer:
        return jsonify({"ok": False, "error": "Cliente no encontrado."}), 404

    customer.active = False
    db.session.flush()
    enqueue_model(db.session, customer, SyncOperation.DELETE)
    db.session.commit()

    return jsonify({"ok": True})

from decimal import Decimal, InvalidOperation

from flask import Blueprint, jsonify, request
from flask_login import login_required
from sqlalchemy.exc import IntegrityError

from models import db
from models.category import Category
from models.product import Product
from models.sync_queue import SyncOperation
from models.user import UserRole
from routes.guards import require_roles
from services.sync_queue import enqueue_model

products_bp = Blueprint("products", __name__, url_prefix="/products")


# -------------------------
# Helpers
# -------------------------
def _clean_str(value) -> str:
    return ("" if value is None else str(value)).strip()


def _to_decimal(val, places: str = "0.01") -> Decimal:
    """
    Convierte a Decimal seguro.
    - Acepta coma o punto.
    - No permite negativos.
    - Si falla -> 0
    """
    raw = _clean_str(val).replace(",", ".")
    try:
        d = Decimal(raw)
    except (InvalidOperation, ValueError):
        return Decimal("0").quantize(Decimal(places))
    if d < 0:
        return Decimal("0").quantize(Decimal(places))
    return d.quantize(Decimal(places))


def _to_int_or_none(val):
    try:
        return int(_clean_str(val))
    except ValueError:
        return None


def _product_json(p: Product) -> dict:
    data = p.sync_payload()
    data["category_name"] = p.category.name if p.category else None
    return data


def _apply_product_fields(product: Product, data: dict) -> None:
    if "code" in data:
        product.code = _clean_str(data.get("code"))
    if "barcode" in data:
        product.barcode = _clean_str(data.get("barcode")) or None
    if "name" in data:
        product.name = _clean_str(data.get("name"))
    if "description" in data:
        product.description = _clean_str(data.get("description")) or None
    if "category_id" in data:
        product.category_id = _to_int_or_none(data.get("category_id"))
    if "price" in data:
        product.price = _to_decimal(data.get("price"))
    if "cost_price" in data:
        product.cost_price = _to_decimal(data.get("cost_price"))
    if "stock" in data:
        product.stock = _to_decimal(data.get("stock"), "0.001")
    if "min_stock" in data:
        product.min_stock = _to_decimal(data.get("min_stock"), "0.001")
    if "unit" in data:
        product.unit = _clean_str(data.get("unit")).upper() or "UN"
    if "active" in data:
        product.active = bool(data.get("active"))


# =========================
# PRODUCTOS
# =========================
@products_bp.get("/")
@login_required
def list_products():
    q = _clean_str(request.args.get("q"))
    only_active = request.args.get("active")

    query = db.session.query(Product)
    if q:
        like = f"%{q}%"
        query = query.filter(
            Product.name.ilike(like) | Product.code.ilike(like) | Product.barcode.ilike(like)
        )
    if only_active in ("0", "1"):
        query = query.filter(Product.active == (only_active == "1"))

    products = query.order_by(Product.name.asc()).limit(500).all()
    return jsonify([_product_json(p) for p in products])


@products_bp.get("/<int:product_id>")
@login_required
def get_product(product_id: int):
    product = db.session.get(Product, product_id)
    if not product:
        return jsonify({"ok": False, "error": "Producto no encontrado."}), 404
    return jsonify(_product_json(product))


@products_bp.post("/")
@login_required
@require_roles(UserRole.ADMIN, UserRole.MANAGER)
def create_product():
    data = request.get_json(silent=True) or {}

    product = Product(active=True, unit="UN")
    _apply_product_fields(product, data)

    if not product.code or not product.name:
        return jsonify({"ok": False, "error": "Código y nombre son obligatorios."}), 400

    if db.session.query(Product.id).filter(Product.code == product.code).first():
        return jsonify({"ok": False, "error": "El código ya existe."}), 400

    db.session.add(product)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"ok": False, "error": "Datos inválidos para el producto."}), 400

    enqueue_model(db.session, product, SyncOperation.INSERT)
    db.session.commit()

    return jsonify({"ok": True, "product": _product_json(product)}), 201


@products_bp.put("/<int:product_id>")
@login_required
@require_roles(UserRole.ADMIN, UserRole.MANAGER)
def update_product(product_id: int):
    product = db.session.get(Product, product_id)
    if not product:
        return jsonify({"ok": False, "error": "Producto no encontrado."}), 404

    data = request.get_json(silent=True) or {}
    _apply_product_fields(product, data)

    if not product.code or not product.name:
        return jsonify({"ok": False, "error": "Código y nombre son obligatorios."}), 400

    exists = (
        db.session.query(Product.id)
        .filter(Product.code == product.code, Product.id != product.id)
        .first()
    )
    if exists:
        db.session.rollback()
        return jsonify({"ok": False, "error": "El código ya existe."}), 400

    db.session.flush()
    enqueue_model(db.session, product, SyncOperation.UPDATE)
    db.session.commit()

    return jsonify({"ok": True, "product": _product_json(product)})


@products_bp.delete("/<int:product_id>")
@login_required
@require_roles(UserRole.ADMIN, UserRole.MANAGER)
def delete_product(product_id: int):
    """Borrado lógico: active = 0 (local y remoto)."""
    product = db.session.get(Product, product_id)
    if not product:
        return jsonify({"ok": False, "error": "Producto no encontrado."}), 404

    product.active = False
    db.session.flush()
    enqueue_model(db.session, product, SyncOperation.DELETE)
    db.session.commit()

    return jsonify({"ok": True})


# =========================
# CATEGORÍAS
# =========================
@products_bp.get("/categories")
@login_required
def list_categories():
    categories = (
        db.session.query(Category)
        .filter(Category.active == True)
        .order_by(Category.name.asc())
        .all()
    )
    return jsonify([c.sync_payload() for c in categories])


@products_bp.post("/categories")
@login_required
@require_roles(UserRole.ADMIN, UserRole.MANAGER)
def create_category():
    data = request.get_json(silent=True) or {}
    name = _clean_str(data.get("name"))
    if not name:
        return jsonify({"ok": False, "error": "El nombre de la categoría es obligatorio."}), 400

    category = Category(name=name, description=_clean_str(data.get("description")) or None, active=True)
    db.session.add(category)
    db.session.flush()
    enqueue_model(db.session, category, SyncOperation.INSERT)
    db.session.commit()

    return jsonify({"ok": True, "category": category.sync_payload()}), 201


@products_bp.put("/categories/<int:category_id>")
@login_required
@require_roles(UserRole.ADMIN, UserRole.MANAGER)
def update_category(category_id: int):
    category = db.session.get(Category, category_id)
    if not category:
        return jsonify({"ok": False, "error": "Categoría no encontrada."}), 404

    data = request.get_json(silent=True) or {}
    if "name" in data:
        name = _clean_str(data.get("name"))
        if not name:
            return jsonify({"ok": False, "error": "El nombre de la categoría es obligatorio."}), 400
        category.name = name
    if "description" in data:
        category.description = _clean_str(data.get("description")) or None

    db.session.flush()
    enqueue_model(db.session, category, SyncOperation.UPDATE)
    db.session.commit()

    return jsonify({"ok": True, "category": category.sync_payload()})


@products_bp.delete("/categories/<int:category_id>")
@login_required
@require_roles(UserRole.ADMIN, UserRole.MANAGER)
def delete_category(category_id: int):
    category = db.session.get(Category, category_id)
    if not category:
        return jsonify({"ok": False, "error": "Categoría no encontrada."}), 404

    category.active = False
    db.session.flush()
    enqueue_model(db.session, category, SyncOperation.DELETE)
    db.session.commit()

    return jsonify({"ok": True})

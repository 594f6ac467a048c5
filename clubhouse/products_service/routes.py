"""
Products service route handlers.
Manages the club shop catalogue.
"""

import logging
from typing import Any, Dict

from flask import Blueprint, jsonify

from clubhouse.auth_service.utils import require_admin_for_mutation
from clubhouse.common.validation import get_json_body, non_negative_number, optional_bool, require_fields
from clubhouse.database.db_connection import get_db, serialize_row
from clubhouse.errors import NotFoundError, error_response

products_bp = Blueprint("products", __name__)

PRODUCT_FIELDS = "product_id, name, description, price, category, is_available, image_url, created_at"


def _product_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    # price 0 is allowed, so presence is checked rather than truthiness
    require_fields(data, ["name", "price"], "Name and price are required.")

    return {
        "name": str(data["name"]).strip(),
        "description": data.get("description") or None,
        "price": non_negative_number(data.get("price"), "price"),
        "category": data.get("category") or None,
        "is_available": optional_bool(data.get("is_available"), "is_available"),
        "image_url": data.get("image_url") or None,
    }


@products_bp.route("", methods=["GET"])
def list_products():
    """
    Get all products, alphabetically by name.
    """
    sql = f"SELECT {PRODUCT_FIELDS} FROM products ORDER BY name ASC;"
    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(sql)
                products = [serialize_row(row) for row in cur.fetchall()]
                return jsonify(products), 200
    except Exception as e:
        logging.error(f"[Products] Error listing products: {e}")
        return jsonify({"message": "Database query failed to retrieve products.", "error": str(e)}), 500


@products_bp.route("/<int:product_id>", methods=["GET"])
def get_product(product_id):
    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT {PRODUCT_FIELDS} FROM products WHERE product_id = %s;", (product_id,))
                product = cur.fetchone()
                if not product:
                    return error_response(NotFoundError("Product not found."))
                return jsonify(serialize_row(product)), 200
    except Exception as e:
        logging.error(f"[Products] Error fetching product {product_id}: {e}")
        return jsonify({"message": "Database query failed to retrieve product.", "error": str(e)}), 500


@products_bp.route("", methods=["POST"])
def create_product():
    """
    Create a new product. Name and price are required; price may be 0.
    """
    denied = require_admin_for_mutation()
    if denied:
        return denied

    fields = _product_payload(get_json_body())

    sql = f"""
        INSERT INTO products (name, description, price, category, is_available, image_url)
        VALUES (%s, %s, %s, %s, %s, %s)
        RETURNING {PRODUCT_FIELDS};
    """

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, (
                    fields["name"],
                    fields["description"],
                    fields["price"],
                    fields["category"],
                    fields["is_available"],
                    fields["image_url"],
                ))
                product = serialize_row(cur.fetchone())
                conn.commit()
                return jsonify({"message": "Product created successfully", "product": product}), 201
    except Exception as e:
        logging.error(f"[Products] Error creating product: {e}")
        return jsonify({"message": "Failed to create product.", "error": str(e)}), 500


@products_bp.route("/<int:product_id>", methods=["PUT"])
def update_product(product_id):
    """
    Replace a product's fields.
    """
    denied = require_admin_for_mutation()
    if denied:
        return denied

    fields = _product_payload(get_json_body())

    sql = f"""
        UPDATE products
        SET name = %s, description = %s, price = %s, category = %s,
            is_available = %s, image_url = %s, updated_at = CURRENT_TIMESTAMP
        WHERE product_id = %s
        RETURNING {PRODUCT_FIELDS};
    """

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, (
                    fields["name"],
                    fields["description"],
                    fields["price"],
                    fields["category"],
                    fields["is_available"],
                    fields["image_url"],
                    product_id,
                ))
                updated = cur.fetchone()
                if not updated:
                    return error_response(NotFoundError("Product not found."))
                conn.commit()
                return jsonify({"message": "Product updated successfully", "product": serialize_row(updated)}), 200
    except Exception as e:
        logging.error(f"[Products] Error updating product {product_id}: {e}")
        return jsonify({"message": "Failed to update product.", "error": str(e)}), 500


@products_bp.route("/<int:product_id>", methods=["DELETE"])
def delete_product(product_id):
    denied = require_admin_for_mutation()
    if denied:
        return denied

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM products WHERE product_id = %s RETURNING product_id;", (product_id,))
                if not cur.fetchone():
                    return error_response(NotFoundError("Product not found."))
                conn.commit()
                return jsonify({"message": "Product deleted successfully", "product_id": product_id}), 200
    except Exception as e:
        logging.error(f"[Products] Error deleting product {product_id}: {e}")
        return jsonify({"message": "Failed to delete product.", "error": str(e)}), 500

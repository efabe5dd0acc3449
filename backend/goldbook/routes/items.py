# Overview: Flask API routes for inventory items; list/search, barcode lookup and item maintenance.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_staff
from ..services import inventory_service
from ..services.inventory_service import InventoryError
from ..services.persistence import PersistenceFailure
from ..services.rate_service import resolve_rate
from ..validation import ValidationError, parse_int


items_bp = Blueprint("items", __name__, url_prefix="/api/items")


@items_bp.get("")
def list_items_route():
    """
    Query params:
    - q: substring of item name or barcode
    - stock_status: in_stock | reserved | sold | returned
    - limit, offset
    """
    try:
        items, total = inventory_service.list_items(
            search=request.args.get("q"),
            stock_status=request.args.get("stock_status"),
            limit=parse_int(request.args.get("limit"), "limit", required=False) or 100,
            offset=parse_int(request.args.get("offset"), "offset", required=False) or 0,
        )
        return jsonify({"items": [item.to_dict() for item in items], "total": total}), 200
    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400


@items_bp.get("/barcode/<barcode>")
def lookup_barcode_route(barcode: str):
    """
    Item template for a scanned barcode.

    A miss is not an error: the response is 200 with "item": null so the
    operator can keep typing the line by hand. A hit carries today's rate
    for the item's metal type.
    """
    item = inventory_service.lookup_item_by_barcode(barcode)
    if item is None:
        return jsonify({"item": None, "rate": None}), 200
    return jsonify({
        "item": item.to_dict(),
        "rate": resolve_rate(item.metal_type).to_dict(),
    }), 200


@items_bp.get("/<int:item_id>")
def get_item_route(item_id: int):
    try:
        return jsonify({"item": inventory_service.get_item(item_id).to_dict()}), 200
    except InventoryError as e:
        return jsonify({"error": str(e), "details": e.details}), 404


@items_bp.post("")
@require_staff
def create_item_route():
    data = request.get_json(silent=True) or {}
    try:
        item = inventory_service.create_item(data)
        return jsonify({"item": item.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except PersistenceFailure as e:
        return jsonify({"error": str(e), "details": e.to_dict()}), 500
    except Exception:
        current_app.logger.exception("Failed to create item")
        return jsonify({"error": "Internal server error"}), 500


@items_bp.put("/<int:item_id>")
@require_staff
def update_item_route(item_id: int):
    data = request.get_json(silent=True)
    try:
        item = inventory_service.update_item(item_id, data)
        return jsonify({"item": item.to_dict()}), 200
    except InventoryError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except PersistenceFailure as e:
        return jsonify({"error": str(e), "details": e.to_dict()}), 500
    except Exception:
        current_app.logger.exception("Failed to update item")
        return jsonify({"error": "Internal server error"}), 500


@items_bp.delete("/<int:item_id>")
@require_staff
def delete_item_route(item_id: int):
    try:
        inventory_service.delete_item(item_id)
        return jsonify({"deleted": item_id}), 200
    except InventoryError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except PersistenceFailure as e:
        return jsonify({"error": str(e), "details": e.to_dict()}), 500
    except Exception:
        current_app.logger.exception("Failed to delete item")
        return jsonify({"error": "Internal server error"}), 500

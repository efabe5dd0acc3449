# Overview: Service-layer operations for customers; lookup by phone and create.

from __future__ import annotations

from ..extensions import db
from ..models import Customer
from ..validation import ValidationError, clean_text, require_text
from .persistence import commit_or_fail


def _normalize_phone(phone: str | None) -> str:
    return "".join(ch for ch in (phone or "") if ch.isdigit() or ch == "+")


def find_customers_by_phone(phone: str) -> list[Customer]:
    """Zero, one or many customers share a phone number."""
    normalized = _normalize_phone(phone)
    if not normalized:
        raise ValidationError("phone is required")
    return (
        db.session.query(Customer)
        .filter(Customer.phone == normalized)
        .order_by(Customer.id)
        .all()
    )


def build_customer(data: dict) -> Customer:
    """Validate and stage a new customer without committing."""
    name = require_text(data.get("name"), "name", max_length=255)
    phone = _normalize_phone(data.get("phone"))
    if not phone:
        raise ValidationError("phone is required")
    if len(phone) > 32:
        raise ValidationError("phone exceeds max length 32")

    customer = Customer(
        name=name,
        phone=phone,
        email=clean_text(data.get("email"), max_length=255, field="email"),
        address=clean_text(data.get("address")),
        notes=clean_text(data.get("notes")),
    )
    db.session.add(customer)
    return customer


def create_customer(data: dict) -> Customer:
    """Create customer(name, phone, optional email/address/notes)."""
    customer = build_customer(data)
    commit_or_fail("customer", "customer")
    return customer


def get_customer(customer_id: int) -> Customer | None:
    return db.session.get(Customer, customer_id)

# backend/goldbook/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/goldbook.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///goldbook.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # GST on jewelry sales, in basis points (300 = 3%, split CGST/SGST intrastate)
    GST_RATE_BPS = int(os.environ.get("GST_RATE_BPS", "300"))

    # GST on purchase slips (1800 = 9% CGST + 9% SGST)
    PURCHASE_GST_RATE_BPS = int(os.environ.get("PURCHASE_GST_RATE_BPS", "1800"))

    # Bill numbers look like AM-20260115-0001 / AM-PURCHASE-20260115-0001
    BILL_NUMBER_PREFIX = os.environ.get("BILL_NUMBER_PREFIX", "AM")

    # Quiet period after the last barcode keystroke before a lookup fires
    BARCODE_DEBOUNCE_MS = int(os.environ.get("BARCODE_DEBOUNCE_MS", "300"))

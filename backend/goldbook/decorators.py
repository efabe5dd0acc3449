# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g


STAFF_HEADER = "X-Staff-Id"


def require_staff(f):
    """
    Require an explicit staff identity on write requests.

    Sets g.staff_id from the X-Staff-Id header. Returns 401 when the header
    is missing or is not a positive integer. Staff accounts themselves are
    managed outside this service.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = (request.headers.get(STAFF_HEADER) or "").strip()
        if not raw:
            return jsonify({"error": "Staff identity required", "header": STAFF_HEADER}), 401
        if not raw.isdigit() or int(raw) <= 0:
            return jsonify({"error": "Invalid staff identity", "header": STAFF_HEADER}), 401

        g.staff_id = int(raw)
        return f(*args, **kwargs)

    return decorated_function

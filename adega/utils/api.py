# --- adega/utils/api.py ---
from datetime import datetime, timedelta, timezone
from flask import jsonify

# store operates on Brasília time (UTC-3, no DST)
BRT = timezone(timedelta(hours=-3))

def _envelope(status, message, data):
    now = datetime.now(BRT)
    if data is None:
        payload = {}
    elif isinstance(data, dict):
        payload = dict(data)
    else:
        payload = {"items": data}
    payload["API_TIME_HUMAN"] = now.strftime("%Y-%m-%d %H:%M:%S")
    return {
        "status": status,
        "message": message,
        "data": payload,
    }

def api_ok(message, data=None):
    return _envelope(True, message, data)

def api_error(message, data=None):
    return _envelope(False, message, data)

# ---- standard API response format ------------------------------------------
def ok(msg, data=None, status=200):
    r = jsonify(api_ok(msg, data)); r.status_code = status; return r

def err(msg, status=400, data=None):
    r = jsonify(api_error(msg, data)); r.status_code = status; return r

def register_error_handlers(app):
    @app.errorhandler(ValueError)
    def handle_value_error(e):
        return err(str(e), 422)

    @app.errorhandler(404)
    def handle_not_found(e):
        return err("not found", 404)

import hashlib
from functools import wraps

from flask import current_app, g, jsonify, request
from itsdangerous import BadData, URLSafeTimedSerializer

from linkdeck.services.site import load_site_config


def _serializer(secret_key: str) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(secret_key=secret_key, salt="linkdeck-api-token")


def _credential_fingerprint(password_hash: str) -> str:
    return hashlib.sha256(password_hash.encode("utf-8")).hexdigest()[:16]


def issue_api_token(secret_key: str) -> str:
    config = load_site_config()
    payload = {
        "admin": config.admin_username,
        "fp": _credential_fingerprint(config.password_hash),
    }
    return _serializer(secret_key).dumps(payload)


def verify_api_token(secret_key: str, token: str, max_age: int) -> bool:
    try:
        payload = _serializer(secret_key).loads(token, max_age=max_age)
    except BadData:
        return False

    config = load_site_config()
    return payload.get("admin") == config.admin_username and payload.get(
        "fp"
    ) == _credential_fingerprint(config.password_hash)


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    token = auth_header.removeprefix("Bearer ").strip()
    return token or None


def api_auth_required(func):
    @wraps(func)
    def wrapped(*args, **kwargs):
        token = _bearer_token()
        if not token or not verify_api_token(
            current_app.config["SECRET_KEY"],
            token,
            max_age=current_app.config["API_TOKEN_MAX_AGE_SECONDS"],
        ):
            return jsonify({"error": "authentication required"}), 401
        g.api_admin = load_site_config().admin_username
        return func(*args, **kwargs)

    return wrapped

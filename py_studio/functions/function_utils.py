"""Request parsing, auth and JSON responses shared by the HTTPS functions."""

import json
from typing import Any

from common import config, utils
from firebase_admin import auth
from firebase_functions import https_fn, logger

_CORS_HEADERS = {
  "Access-Control-Allow-Methods": "POST, OPTIONS",
  "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

_EMULATOR_ORIGINS = frozenset({
  "http://localhost:3000",
  "http://127.0.0.1:3000",
  "http://localhost:5000",
  "http://127.0.0.1:5000",
})

HEALTH_CHECK_PATH = "/__/health"


def _allowed_origins() -> frozenset[str]:
  if utils.is_emulator():
    return _EMULATOR_ORIGINS
  return frozenset(origin.rstrip("/") for origin in config.ALLOWED_ORIGINS)


def get_cors_headers(req: https_fn.Request | None) -> dict[str, str]:
  """CORS headers for the request's origin, or none if it is not allowed."""
  origin = req.headers.get("Origin") if req else None
  if not origin or origin.rstrip("/") not in _allowed_origins():
    return {}
  return {**_CORS_HEADERS, "Access-Control-Allow-Origin": origin}


def handle_cors_preflight(req: https_fn.Request) -> https_fn.Response | None:
  """Answer an OPTIONS preflight request; None for any other method."""
  if req.method != "OPTIONS":
    return None
  return https_fn.Response(
    "",
    status=204,
    headers=get_cors_headers(req) or _CORS_HEADERS,
  )


def handle_health_check(req: https_fn.Request) -> https_fn.Response | None:
  """Answer the health check path; None for any other path."""
  if req.path != HEALTH_CHECK_PATH:
    return None
  return https_fn.Response("OK", status=200, headers=get_cors_headers(req))


def get_user_id(req: https_fn.Request) -> str | None:
  """Return the uid of the caller's Firebase ID token.

  Args:
    req: The request, carrying an `Authorization: Bearer <token>` header.

  Returns:
    The uid, or None when the token does not verify.

  Raises:
    ValueError: If the Authorization header is missing.
  """
  authorization = req.headers.get("Authorization")
  if not authorization:
    raise ValueError("Authorization header is missing")

  token = authorization.split(" ")[-1]
  try:
    return auth.verify_id_token(token)["uid"]
  except Exception as e:  # pylint: disable=broad-exception-caught
    logger.error(f"Error verifying ID token: {e}")
    return None


def _json_response(
  body: dict[str, Any],
  req: https_fn.Request | None,
  status: int,
) -> https_fn.Response:
  return https_fn.Response(
    json.dumps({"data": body}),
    status=status,
    headers=get_cors_headers(req),
    mimetype="application/json",
  )


def success_response(
  data: dict[str, Any],
  req: https_fn.Request | None = None,
  status: int = 200,
) -> https_fn.Response:
  """Wrap `data` as `{"data": data}`."""
  logger.info(f"Success response with keys: {sorted(data)}")
  return _json_response(data, req, status)


def error_response(
  message: str,
  *,
  error_type: str | None = None,
  req: https_fn.Request | None = None,
  status: int = 500,
) -> https_fn.Response:
  """Wrap an error message, and its type when given, under "data"."""
  logger.error(f"Error response ({status}, {error_type}): {message}")
  body: dict[str, Any] = {"error": message}
  if error_type:
    body["error_type"] = error_type
  return _json_response(body, req, status)


def _request_data(req: https_fn.Request) -> dict[str, Any] | None:
  """The "data" object of a JSON request, or None for a query request."""
  if not req.is_json:
    return None
  body = req.get_json()
  data = body.get("data") if isinstance(body, dict) else None
  return data if isinstance(data, dict) else {}


def get_param(
  req: https_fn.Request,
  param_name: str,
  default: Any | None = None,
  required: bool = False,
) -> Any | None:
  """Read one parameter from the JSON body or the query string.

  Raises:
    ValueError: If a required parameter is missing.
  """
  data = _request_data(req)
  source = req.args if data is None else data
  value = source.get(param_name, default)
  if value is None and required:
    raise ValueError(f"Missing required parameter '{param_name}'")
  return value


def get_params(req: https_fn.Request) -> dict[str, Any]:
  """All parameters of the JSON body or the query string."""
  data = _request_data(req)
  if data is None:
    return dict(req.args.items())
  return dict(data)

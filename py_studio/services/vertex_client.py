"""Vertex AI REST client for the image models."""

from __future__ import annotations

import asyncio
from concurrent import futures
from typing import Any

import google.auth
import requests
from common import config
from firebase_functions import logger
from google.auth import exceptions as auth_exceptions
from google.auth.transport.requests import AuthorizedSession


class Error(Exception):
  """Base class for exceptions in this module."""


class AuthenticationError(Error):
  """Exception raised when no Google Cloud credentials are available."""


class VertexApiError(Error):
  """Exception raised when the Vertex AI API returns an error status.

  `errors` holds the vendor's error entries, each with at least a
  'message' key.
  """

  def __init__(
    self,
    message: str,
    errors: list[dict[str, Any]] | None = None,
    status_code: int | None = None,
  ):
    super().__init__(message)
    self.errors = errors or []
    self.status_code = status_code

  @classmethod
  def from_response(cls, response: requests.Response) -> VertexApiError:
    """Build the error from a failed HTTP response."""
    try:
      body = response.json()
    except ValueError:
      body = None

    error_body = body.get("error") if isinstance(body, dict) else None
    if isinstance(error_body, dict) and error_body.get("message"):
      message = str(error_body["message"])
      errors = [{
        "message": message,
        "status": error_body.get("status"),
        "code": error_body.get("code"),
      }]
    else:
      message = (f"Request failed with status code {response.status_code}: "
                 f"{response.text}")
      errors = []
    return cls(message, errors=errors, status_code=response.status_code)


def get_authorized_session() -> AuthorizedSession:
  """Return a session that signs requests with the default credentials.

  Raises:
    AuthenticationError: If credentials cannot be loaded.
  """
  try:
    credentials, _ = google.auth.default(scopes=[config.CLOUD_PLATFORM_SCOPE])
  except auth_exceptions.GoogleAuthError as e:
    raise AuthenticationError(f"Unable to load credentials: {e}") from e
  return AuthorizedSession(credentials)


def model_url(model: str, method: str, location: str | None = None) -> str:
  """Return the publisher model endpoint for a method like 'predict'."""
  location = location or config.PROJECT_LOCATION
  return (f"https://{location}-aiplatform.googleapis.com/v1/projects/"
          f"{config.PROJECT_ID}/locations/{location}/publishers/google/"
          f"models/{model}:{method}")


def post_json(
  session: AuthorizedSession,
  url: str,
  payload: dict[str, Any],
  timeout: float | None = None,
) -> dict[str, Any]:
  """POST a JSON payload and return the decoded JSON response.

  Raises:
    VertexApiError: If the API responds with an error status.
  """
  logger.info(f"POST {url}")
  response = session.post(
    url,
    json=payload,
    timeout=timeout or config.VERTEX_REQUEST_TIMEOUT_SEC,
  )
  if not response.ok:
    raise VertexApiError.from_response(response)
  return response.json()


async def post_json_async(
  session: AuthorizedSession,
  url: str,
  payload: dict[str, Any],
  timeout: float | None = None,
) -> dict[str, Any]:
  """Run `post_json` without blocking the event loop."""
  return await asyncio.to_thread(post_json, session, url, payload, timeout)


async def post_json_with_deadline(
  session: AuthorizedSession,
  url: str,
  payload: dict[str, Any],
  deadline_sec: float,
) -> dict[str, Any]:
  """Run `post_json` on its own thread and give up after `deadline_sec`.

  A request still running at the deadline is abandoned. Its thread is not
  joined, so the caller's event loop can close while the request finishes.

  Raises:
    asyncio.TimeoutError: If no response arrives within `deadline_sec`.
    VertexApiError: If the API responds with an error status.
  """
  loop = asyncio.get_running_loop()
  executor = futures.ThreadPoolExecutor(max_workers=1,
                                        thread_name_prefix="vertex-post")
  try:
    return await asyncio.wait_for(
      loop.run_in_executor(executor, post_json, session, url, payload,
                           deadline_sec),
      timeout=deadline_sec,
    )
  finally:
    executor.shutdown(wait=False)

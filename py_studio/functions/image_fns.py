"""Cloud functions for image generation, editing and upscaling."""

from __future__ import annotations

import asyncio

from common import config, image_generation, models
from firebase_functions import https_fn, logger, options
from functions import function_utils

_DEFAULT_UPSCALE_FACTOR = "x2"
_UPSCALE_FACTORS = ("x2", "x4")


class _RequestError(Exception):
  """A request that cannot be served, with its HTTP status."""

  def __init__(self, message: str, status: int, error_type: str):
    super().__init__(message)
    self.status = status
    self.error_type = error_type


def _check_request(req: https_fn.Request) -> https_fn.Response | None:
  """Answer preflight, health check and wrong-method requests."""
  if response := function_utils.handle_cors_preflight(req):
    return response
  if response := function_utils.handle_health_check(req):
    return response
  if req.method != 'POST':
    return function_utils.error_response(
      f"Method not allowed: {req.method}",
      error_type="method_not_allowed",
      req=req,
      status=405,
    )
  return None


def _get_app_context(req: https_fn.Request) -> models.AppContext:
  """Identify the caller and their image library."""
  try:
    user_id = function_utils.get_user_id(req)
  except ValueError as e:
    raise _RequestError(str(e), 401, "unauthenticated") from e
  if not user_id:
    raise _RequestError("Invalid ID token", 401, "unauthenticated")
  return models.AppContext(gcs_uri=config.USER_LIBRARY_GCS_URI,
                           user_id=user_id)


def _images_response(
  result: list[models.DisplayResult] | models.OperationError,
  req: https_fn.Request,
) -> https_fn.Response:
  if isinstance(result, models.OperationError):
    return function_utils.error_response(result.error, req=req)
  return function_utils.success_response(
    {"images": [image.as_dict for image in result]},
    req=req,
  )


def _error_response(e: _RequestError,
                    req: https_fn.Request) -> https_fn.Response:
  return function_utils.error_response(
    str(e),
    error_type=e.error_type,
    req=req,
    status=e.status,
  )


@https_fn.on_request(
  memory=options.MemoryOption.GB_1,
  timeout_sec=300,
)
def generate_image(req: https_fn.Request) -> https_fn.Response:
  """Generate images from a prompt and the style fields of the form."""
  if response := _check_request(req):
    return response

  try:
    app_context = _get_app_context(req)
    form = models.GenerateImageForm.from_dict(function_utils.get_params(req))
    if not form.prompt or not form.model_version:
      raise _RequestError("'prompt' and 'model_version' are required", 400,
                          "invalid_request")
  except (TypeError, ValueError) as e:
    return _error_response(_RequestError(str(e), 400, "invalid_request"), req)
  except _RequestError as e:
    return _error_response(e, req)

  try:
    result = asyncio.run(image_generation.generate_image(form, app_context))
  except ValueError as e:
    logger.error(f"Cannot generate images: {e}")
    return function_utils.error_response(str(e), req=req)
  return _images_response(result, req)


@https_fn.on_request(
  memory=options.MemoryOption.GB_1,
  timeout_sec=300,
)
def edit_image(req: https_fn.Request) -> https_fn.Response:
  """Edit an image within a mask, guided by a prompt."""
  if response := _check_request(req):
    return response

  try:
    app_context = _get_app_context(req)
    form = models.EditImageForm.from_dict(function_utils.get_params(req))
    if not form.input_image or not form.model_version:
      raise _RequestError("'input_image' and 'model_version' are required",
                          400, "invalid_request")
  except (TypeError, ValueError) as e:
    return _error_response(_RequestError(str(e), 400, "invalid_request"), req)
  except _RequestError as e:
    return _error_response(e, req)

  try:
    result = asyncio.run(image_generation.edit_image(form, app_context))
  except ValueError as e:
    logger.error(f"Cannot edit image: {e}")
    return function_utils.error_response(str(e), req=req)
  return _images_response(result, req)


@https_fn.on_request(
  memory=options.MemoryOption.GB_1,
  timeout_sec=120,
)
def upscale_image(req: https_fn.Request) -> https_fn.Response:
  """Upscale an image given by GCS URI or as base64."""
  if response := _check_request(req):
    return response

  try:
    app_context = _get_app_context(req)
    source = models.UpscaleSource(
      uri=function_utils.get_param(req, 'gcs_uri'),
      base64=function_utils.get_param(req, 'image_base64'),
    )
    upscale_factor = function_utils.get_param(req, 'upscale_factor',
                                              _DEFAULT_UPSCALE_FACTOR)
    if upscale_factor not in _UPSCALE_FACTORS:
      raise _RequestError(f"Invalid upscale factor: {upscale_factor}", 400,
                          "invalid_request")
  except (TypeError, ValueError) as e:
    return _error_response(_RequestError(str(e), 400, "invalid_request"), req)
  except _RequestError as e:
    return _error_response(e, req)

  try:
    result = asyncio.run(
      image_generation.upscale_image(source, upscale_factor, app_context))
  except ValueError as e:
    logger.error(f"Cannot upscale image: {e}")
    return function_utils.error_response(str(e), req=req)

  if isinstance(result, models.OperationError):
    return function_utils.error_response(result.error, req=req)
  return function_utils.success_response(result.as_dict, req=req)

"""Generate, edit and upscale images with the Vertex AI image models.

Each operation authenticates, builds a JSON request, calls the model and
normalizes the returned images. Failures are returned as
`models.OperationError` with a user-facing message; the underlying error is
only logged. An incomplete `models.AppContext` raises `ValueError`.
"""

from __future__ import annotations

import asyncio
import re
from typing import Any

import requests
from common import (config, image_results, models, prompt_builder,
                    reference_data, utils)
from firebase_functions import logger
from services import cloud_storage, vertex_client

AUTHENTICATION_ERROR = "Unable to authenticate your account to access images"
PROMPT_ERROR = "An error occurred while generating the prompt."
NO_IMAGES_ERROR = "There were an issue, no images were generated"
NO_UPSCALED_IMAGES_ERROR = "There were an issue, images could not be upscaled"
UNEXPECTED_ERROR = "An unexpected error occurred."
EDIT_ERROR = "Issue while editing image."
DOWNLOAD_ERROR = "Error while downloading the image to upscale."
UPSCALE_TIMEOUT_ERROR = "Upscaling timed out"
UPSCALE_TOO_LARGE_ERROR = (
  "Image size limit exceeded. The resulting image is too large. "
  "Please try a smaller resolution or a different image.")
UPSCALE_ERROR = "Error while upscaling images."

_PEOPLE_FACE_SAFETY_PHRASE = "safety settings for peopleface generation"
_USAGE_GUIDELINES_PHRASE = (
  "All images were filtered out because they violated Vertex AI's usage "
  "guidelines")
_PERSON_GENERATION_PHRASE = "Person Generation"
_RESPONSE_TOO_LARGE_PHRASE = "Response size too large."
_GENERATION_FAILED_PREFIX = "Image generation failed with the following error: "

_GENERATE_SAFETY_PHRASES = (
  _PEOPLE_FACE_SAFETY_PHRASE,
  _USAGE_GUIDELINES_PHRASE,
  _PERSON_GENERATION_PHRASE,
)
_EDIT_SAFETY_PHRASES = (
  _PEOPLE_FACE_SAFETY_PHRASE,
  _USAGE_GUIDELINES_PHRASE,
)

_ERROR_PREFIX_RE = re.compile(r"^Error: ", re.IGNORECASE)


class Error(Exception):
  """Base class for exceptions in this module."""


class NoImagesGeneratedError(Error):
  """Exception raised when the model response carries no images."""


class ImagesFilteredError(Error):
  """Exception raised when the model filtered out an edit."""


class UpscaleTimeoutError(Error):
  """Exception raised when the upscale call exceeds its time limit."""


def _first_nested_error_message(error: Exception) -> str | None:
  """Return the message of the first entry in `error.errors`, if any."""
  errors = getattr(error, "errors", None)
  if errors and isinstance(errors[0], dict):
    return errors[0].get("message") or None
  return None


def translate_generate_error(error: Exception) -> str:
  """Map a generation failure to the message shown to the user."""
  error_string = str(error)
  if any(phrase in error_string for phrase in _GENERATE_SAFETY_PHRASES):
    return _ERROR_PREFIX_RE.sub("", error_string)

  message = _first_nested_error_message(error)
  if message:
    return message.replace(_GENERATION_FAILED_PREFIX, "")
  return UNEXPECTED_ERROR


def translate_edit_error(error: Exception) -> str:
  """Map an edit failure to the message shown to the user."""
  error_string = str(error)
  if any(phrase in error_string for phrase in _EDIT_SAFETY_PHRASES):
    return error_string.replace("Error: ", "", 1)
  return _first_nested_error_message(error) or error_string


def translate_upscale_error(error: Exception) -> str:
  """Map an upscale failure to the message shown to the user."""
  if _RESPONSE_TOO_LARGE_PHRASE in str(error):
    return UPSCALE_TOO_LARGE_ERROR
  return UPSCALE_ERROR


def is_gemini_model(model_version: str) -> bool:
  """Gemini image models use generateContent, Imagen models use predict."""
  return model_version.startswith("gemini")


def generation_location(model_version: str) -> str:
  """Return the region that serves the model."""
  if config.GEMINI_FLASH_IMAGE_MODEL in model_version:
    return config.GEMINI_FLASH_IMAGE_LOCATION
  return config.PROJECT_LOCATION


def build_gemini_generate_request(
  prompt: str,
  form: models.GenerateImageForm,
) -> dict[str, Any]:
  """Build a generateContent request with the prompt as the only part."""
  request: dict[str, Any] = {
    "contents": [{
      "role": "user",
      "parts": [{
        "text": prompt
      }],
    }],
    "generationConfig": {
      "responseModalities": ["TEXT", "IMAGE"],
      "imageConfig": {
        "aspectRatio": form.aspect_ratio
      },
    },
  }
  seed = utils.parse_int(form.seed_number) if form.seed_number else None
  if seed is not None:
    request["generationConfig"]["seed"] = seed
  return request


def build_imagen_generate_request(
  prompt: str,
  form: models.GenerateImageForm,
  storage_uri: str,
) -> dict[str, Any]:
  """Build an Imagen predict request that stores results in storage_uri."""
  parameters: dict[str, Any] = {
    "sampleCount": form.sample_count,
    "aspectRatio": form.aspect_ratio,
    "outputOptions": {
      "mimeType": form.output_mime_type
    },
    "includeRaiReason": True,
    "storageUri": storage_uri,
  }
  if form.negative_prompt:
    parameters["negativePrompt"] = form.negative_prompt
  if form.person_generation:
    parameters["personGeneration"] = form.person_generation
  seed = utils.parse_int(form.seed_number) if form.seed_number else None
  if seed is not None:
    # Imagen ignores the seed while the watermark is on
    parameters["seed"] = seed
    parameters["addWatermark"] = False

  return {
    "instances": [{
      "prompt": prompt
    }],
    "parameters": parameters,
  }


def build_edit_request(
  form: models.EditImageForm,
  storage_uri: str,
) -> dict[str, Any]:
  """Build an Imagen edit request from a raw image and its mask."""
  mask_reference: dict[str, Any] = {
    "referenceType": "REFERENCE_TYPE_MASK",
    "referenceId": 2,
    "referenceImage": {
      "bytesBase64Encoded": utils.strip_data_url_prefix(form.input_mask),
    },
    "maskImageConfig": {
      "maskMode": "MASK_MODE_USER_PROVIDED",
      "dilation": utils.parse_float(form.mask_dilation),
    },
  }
  if form.edit_mode == models.EditMode.BGSWAP.value:
    # The model computes the background mask itself
    del mask_reference["referenceImage"]
    mask_reference["maskImageConfig"]["maskMode"] = "MASK_MODE_BACKGROUND"
    del mask_reference["maskImageConfig"]["dilation"]

  return {
    "instances": [{
      "prompt":
      form.prompt,
      "referenceImages": [
        {
          "referenceType": "REFERENCE_TYPE_RAW",
          "referenceId": 1,
          "referenceImage": {
            "bytesBase64Encoded":
            utils.strip_data_url_prefix(form.input_image),
          },
        },
        mask_reference,
      ],
    }],
    "parameters": {
      "negativePrompt": form.negative_prompt,
      "editConfig": {
        "baseSteps": utils.parse_int(form.base_steps),
      },
      "editMode": form.edit_mode,
      "sampleCount": utils.parse_int(form.sample_count),
      "outputOptions": {
        "mimeType": form.output_mime_type,
      },
      "includeRaiReason": True,
      "personGeneration": form.person_generation,
      "storageUri": storage_uri,
    },
  }


def build_upscale_request(
  image_base64: str,
  upscale_factor: str,
  storage_uri: str,
) -> dict[str, Any]:
  """Build a single-image upscale request."""
  return {
    "instances": [{
      "prompt": "",
      "image": {
        "bytesBase64Encoded": utils.strip_data_url_prefix(image_base64),
      },
    }],
    "parameters": {
      "sampleCount": 1,
      "mode": "upscale",
      "upscaleConfig": {
        "upscaleFactor": upscale_factor,
      },
      "storageUri": storage_uri,
    },
  }


def parse_gemini_results(response: dict[str, Any]) -> list[models.ModelResult]:
  """Extract the image parts of a generateContent response.

  Raises:
    NoImagesGeneratedError: If the first candidate has no image content.
  """
  candidates = response.get("candidates") or []
  content = candidates[0].get("content") if candidates else None
  if not content:
    raise NoImagesGeneratedError(NO_IMAGES_ERROR)

  results = []
  # Text parts describe the images that follow them
  text = None
  for part in content.get("parts") or []:
    if part.get("text"):
      text = part["text"]
      continue
    result = models.ModelResult.from_content_part(part, prompt=text)
    if result:
      results.append(result)
  if not results:
    raise NoImagesGeneratedError(NO_IMAGES_ERROR)
  return results


def parse_predictions(response: dict[str, Any]) -> list[models.ModelResult]:
  """Extract the predictions of an Imagen predict response.

  Raises:
    NoImagesGeneratedError: If the response has no predictions.
  """
  predictions = response.get("predictions")
  if not predictions:
    raise NoImagesGeneratedError(NO_IMAGES_ERROR)
  return [models.ModelResult.from_prediction(p) for p in predictions]


def _authorized_session_or_error():
  try:
    return vertex_client.get_authorized_session(), None
  except vertex_client.AuthenticationError as e:
    logger.error(f"Authentication failed: {e}")
    return None, models.OperationError(error=AUTHENTICATION_ERROR)


async def generate_image(
  form: models.GenerateImageForm,
  app_context: models.AppContext,
) -> list[models.DisplayResult] | models.OperationError:
  """Generate images from the form's prompt.

  Returns:
    One display result per returned image, or an OperationError.

  Raises:
    ValueError: If the app context is incomplete.
  """
  session, auth_error = _authorized_session_or_error()
  if auth_error:
    return auth_error

  try:
    full_prompt = prompt_builder.generate_prompt(form)
  except Exception as e:  # pylint: disable=broad-exception-caught
    logger.error(f"Error building prompt: {e}")
    return models.OperationError(error=PROMPT_ERROR)

  target_gcs_uri = app_context.library_uri(config.GENERATED_IMAGES_FOLDER)

  model_version = form.model_version
  location = generation_location(model_version)
  use_gemini = is_gemini_model(model_version)
  if use_gemini:
    url = vertex_client.model_url(model_version, "generateContent", location)
    payload = build_gemini_generate_request(full_prompt, form)
  else:
    url = vertex_client.model_url(model_version, "predict", location)
    payload = build_imagen_generate_request(full_prompt, form, target_gcs_uri)

  logger.info(f"""Generating images with {model_version} ({location})
Prompt:
{full_prompt}

Aspect ratio: {form.aspect_ratio}
User ID: {app_context.user_id}
""")

  try:
    response = await vertex_client.post_json_async(session, url, payload)
    if use_gemini:
      results = parse_gemini_results(response)
    else:
      results = parse_predictions(response)

    ratio_pixels = reference_data.get_ratio_pixels(form.aspect_ratio)
    batch = models.ImageBatch(
      aspect_ratio=form.aspect_ratio,
      width=ratio_pixels.width if ratio_pixels else 0,
      height=ratio_pixels.height if ratio_pixels else 0,
      used_prompt=full_prompt,
      user_id=app_context.user_id,
      model_version=model_version,
      mode=models.ImageMode.GENERATED,
    )
    return await image_results.build_image_list(results, target_gcs_uri,
                                                batch)
  except Exception as e:  # pylint: disable=broad-exception-caught
    logger.error(f"Error generating images: {e}")
    return models.OperationError(error=translate_generate_error(e))


async def edit_image(
  form: models.EditImageForm,
  app_context: models.AppContext,
) -> list[models.DisplayResult] | models.OperationError:
  """Edit the form's input image within its mask.

  Unlike generation, a filtered first prediction fails the whole call.

  Raises:
    ValueError: If the app context is incomplete.
  """
  session, auth_error = _authorized_session_or_error()
  if auth_error:
    return auth_error

  target_gcs_uri = app_context.library_uri(config.EDITED_IMAGES_FOLDER)
  url = vertex_client.model_url(form.model_version, "predict")
  payload = build_edit_request(form, target_gcs_uri)

  logger.info(
    f"Editing image with {form.model_version} ({form.edit_mode}) for user "
    f"{app_context.user_id}")

  try:
    response = await vertex_client.post_json_async(session, url, payload)
    results = parse_predictions(response)
    if results[0].kind == models.ModelResultKind.FILTERED:
      raise ImagesFilteredError(utils.clean_result(
        results[0].rai_filtered_reason))
  except Exception as e:  # pylint: disable=broad-exception-caught
    logger.error(f"Error editing image: {e}")
    return models.OperationError(error=translate_edit_error(e))

  try:
    batch = models.ImageBatch(
      aspect_ratio=form.ratio,
      width=form.width,
      height=form.height,
      used_prompt=form.prompt,
      user_id=app_context.user_id,
      model_version=form.model_version,
      mode=models.ImageMode.EDITED,
    )
    return await image_results.build_image_list(results, target_gcs_uri,
                                                batch)
  except Exception as e:  # pylint: disable=broad-exception-caught
    logger.error(f"Error building edited image list: {e}")
    return models.OperationError(error=EDIT_ERROR)


async def upscale_image(
  source: models.UpscaleSource,
  upscale_factor: str,
  app_context: models.AppContext,
) -> models.UpscaleResult | models.OperationError:
  """Upscale an image stored in Cloud Storage or given as base64.

  Only the location of the upscaled image is returned; the caller signs it
  separately.

  Raises:
    ValueError: If the app context is incomplete.
  """
  session, auth_error = _authorized_session_or_error()
  if auth_error:
    return auth_error

  target_gcs_uri = app_context.library_uri(config.UPSCALED_IMAGES_FOLDER)

  if source.uri:
    try:
      image_base64 = await asyncio.to_thread(
        cloud_storage.download_media_from_gcs, source.uri)
    except Exception as e:  # pylint: disable=broad-exception-caught
      logger.error(f"Error downloading {source.uri}: {e}")
      cause = utils.clean_result(str(e).replace("Error: ", ""))
      return models.OperationError(error=cause or DOWNLOAD_ERROR)
  else:
    image_base64 = source.base64

  url = vertex_client.model_url(config.UPSCALE_MODEL, "predict")
  payload = build_upscale_request(image_base64, upscale_factor,
                                  target_gcs_uri)

  logger.info(f"Upscaling image ({upscale_factor}) for user "
              f"{app_context.user_id}")

  try:
    try:
      response = await vertex_client.post_json_with_deadline(
        session,
        url,
        payload,
        deadline_sec=config.UPSCALE_TIMEOUT_SEC,
      )
    except (asyncio.TimeoutError, requests.Timeout) as e:
      raise UpscaleTimeoutError(UPSCALE_TIMEOUT_ERROR) from e

    predictions = response.get("predictions")
    if not predictions or not predictions[0].get("gcsUri"):
      raise NoImagesGeneratedError(NO_UPSCALED_IMAGES_ERROR)

    return models.UpscaleResult(
      new_gcs_uri=predictions[0]["gcsUri"],
      mime_type=predictions[0].get("mimeType") or "image/png",
    )
  except Exception as e:  # pylint: disable=broad-exception-caught
    logger.error(f"Error upscaling image: {e}")
    return models.OperationError(error=translate_upscale_error(e))

"""Normalizes model results into images the client can display.

Every result is transformed independently and concurrently. The returned
list always has the same length and order as the input: each entry is a
`DisplayImage`, an `ImageWarning` (the model filtered the image) or an
`ImageError` (the image could not be stored or signed).
"""

from __future__ import annotations

import asyncio
from typing import Callable

from common import config, models, utils
from firebase_functions import logger
from services import cloud_storage

SECURED_ACCESS_ERROR = "Error while getting secured access to content."


def derive_image_key(object_name: str, user_id: str, image_format: str) -> str:
  """Derive a short identifier from a stored object name."""
  key = object_name.replace("/", "")
  fragments = [
    user_id,
    config.GENERATED_IMAGES_FOLDER,
    config.EDITED_IMAGES_FOLDER,
    "sample_",
    f".{image_format.lower()}",
  ]
  for fragment in fragments:
    if fragment:
      key = key.replace(fragment, "", 1)
  return key


def _build_display_image(
  *,
  result: models.ModelResult,
  batch: models.ImageBatch,
  signed_url: str,
  gcs_uri: str,
  file_name: str,
  key: str,
) -> models.DisplayImage:
  return models.DisplayImage(
    src=signed_url,
    gcs_uri=gcs_uri,
    format=result.format,
    prompt=result.prompt if result.prompt else batch.used_prompt,
    alt_text=f"Generated image {file_name}",
    key=key,
    width=batch.width,
    height=batch.height,
    ratio=batch.aspect_ratio,
    date=utils.formatted_date(),
    author=batch.user_id,
    model_version=batch.model_version,
    mode=batch.mode.value,
  )


def _filtered_warning(result: models.ModelResult) -> models.ImageWarning:
  logger.warn(f"Image filtered by the model: {result.rai_filtered_reason}")
  return models.ImageWarning(warning=str(result.rai_filtered_reason))


async def _normalize_uri_result(
  result: models.ModelResult,
  batch: models.ImageBatch,
) -> models.DisplayResult:
  if result.kind == models.ModelResultKind.FILTERED:
    return _filtered_warning(result)

  try:
    file_name = cloud_storage.decompose_uri(result.gcs_uri or "").file_name
    signed_url = await asyncio.to_thread(cloud_storage.get_signed_url,
                                         result.gcs_uri)
  except Exception as e:  # pylint: disable=broad-exception-caught
    logger.error(f"Error signing {result.gcs_uri}: {utils.clean_result(e)}")
    return models.ImageError(error=SECURED_ACCESS_ERROR)

  return _build_display_image(
    result=result,
    batch=batch,
    signed_url=signed_url,
    gcs_uri=result.gcs_uri,
    file_name=file_name,
    key=derive_image_key(file_name, batch.user_id, result.format),
  )


async def build_image_list_from_uri(
  images_in_gcs: list[models.ModelResult],
  batch: models.ImageBatch,
) -> list[models.DisplayResult]:
  """Sign results the model already stored in Cloud Storage."""
  return list(await asyncio.gather(
    *[_normalize_uri_result(result, batch) for result in images_in_gcs]))


async def _normalize_base64_result(
  result: models.ModelResult,
  index: int,
  bucket_name: str,
  folder_name: str,
  batch: models.ImageBatch,
) -> models.DisplayResult:
  if result.kind == models.ModelResultKind.FILTERED:
    return _filtered_warning(result)

  image_format = result.format
  file_name = f"sample_{index}"
  object_name = f"{folder_name}/{file_name}.{image_format.lower()}"

  try:
    gcs_uri = await asyncio.to_thread(
      cloud_storage.upload_base64_image,
      result.bytes_base64,
      bucket_name,
      object_name,
      result.mime_type,
    )
    signed_url = await asyncio.to_thread(cloud_storage.get_signed_url, gcs_uri)
  except Exception as e:  # pylint: disable=broad-exception-caught
    logger.error(f"Error storing {object_name}: {utils.clean_result(e)}")
    return models.ImageError(error=SECURED_ACCESS_ERROR)

  return _build_display_image(
    result=result,
    batch=batch,
    signed_url=signed_url,
    gcs_uri=gcs_uri,
    file_name=file_name,
    key=derive_image_key(object_name, batch.user_id, image_format),
  )


async def build_image_list_from_base64(
  images_base64: list[models.ModelResult],
  target_gcs_uri: str,
  batch: models.ImageBatch,
  folder_id_generator: Callable[[], int] | None = None,
) -> list[models.DisplayResult]:
  """Store inline results under target_gcs_uri and sign them.

  Objects are named {target path}/{folder id}/sample_{index}.{ext}, with one
  folder id per call.

  Raises:
    ValueError: If target_gcs_uri is not a valid GCS URI.
  """
  bucket_name, target_path = cloud_storage.parse_gcs_uri(target_gcs_uri)
  folder_id_generator = folder_id_generator or utils.generate_unique_folder_id
  folder_name = f"{target_path}/{folder_id_generator()}"

  return list(await asyncio.gather(*[
    _normalize_base64_result(result, index, bucket_name, folder_name, batch)
    for index, result in enumerate(images_base64)
  ]))


async def build_image_list(
  results: list[models.ModelResult],
  target_gcs_uri: str,
  batch: models.ImageBatch,
) -> list[models.DisplayResult]:
  """Normalize a batch, storing it first unless the model already did."""
  if any(result.kind == models.ModelResultKind.STORAGE for result in results):
    return await build_image_list_from_uri(results, batch)
  return await build_image_list_from_base64(results, target_gcs_uri, batch)

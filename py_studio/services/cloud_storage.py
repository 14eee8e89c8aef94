"""Reads, writes and signs objects in the user image library on GCS."""

import base64
import binascii
import datetime
from dataclasses import dataclass

from common import config
from google.cloud import storage as gcs

_GCS_SCHEME = "gs://"

_client = None  # pylint: disable=invalid-name


class Error(Exception):
  """Base class for exceptions in this module."""


class UploadError(Error):
  """Exception raised when content cannot be stored."""


@dataclass(frozen=True)
class DecomposedUri:
  """The parts of a GCS URI."""
  bucket_name: str
  file_name: str

  @property
  def uri(self) -> str:
    return f"{_GCS_SCHEME}{self.bucket_name}/{self.file_name}"


def client() -> gcs.Client:
  """The storage client, created on first use."""
  global _client  # pylint: disable=global-statement
  if _client is None:
    _client = gcs.Client(project=config.PROJECT_ID or None)
  return _client


def parse_gcs_uri(gcs_uri: str) -> tuple[str, str]:
  """Split `gs://bucket/path/to/object` into (bucket, object name).

  Raises:
    ValueError: If the URI has no scheme, bucket or object name.
  """
  if not gcs_uri or not gcs_uri.startswith(_GCS_SCHEME):
    raise ValueError(f"Invalid GCS URI format: {gcs_uri}")
  bucket_name, _, file_name = gcs_uri.removeprefix(_GCS_SCHEME).partition("/")
  if not bucket_name or not file_name:
    raise ValueError(f"Invalid GCS URI format: {gcs_uri}")
  return bucket_name, file_name


def decompose_uri(gcs_uri: str) -> DecomposedUri:
  """Split a GCS URI into its bucket and object (file) name."""
  bucket_name, file_name = parse_gcs_uri(gcs_uri)
  return DecomposedUri(bucket_name=bucket_name, file_name=file_name)


def _blob(location: DecomposedUri) -> gcs.Blob:
  return client().bucket(location.bucket_name).blob(location.file_name)


def upload_bytes_to_gcs(
  content_bytes: bytes,
  gcs_uri: str,
  content_type: str,
) -> str:
  """Store `content_bytes` at `gcs_uri` and return the URI."""
  location = decompose_uri(gcs_uri)
  _blob(location).upload_from_string(content_bytes, content_type=content_type)
  return location.uri


def upload_base64_image(
  bytes_base64: str,
  bucket_name: str,
  object_name: str,
  content_type: str = "image/png",
) -> str:
  """Decode a base64 image and store it as bucket_name/object_name.

  Args:
    bytes_base64: The image, base64 encoded without a data URL prefix
    bucket_name: The target bucket
    object_name: The object name inside the bucket
    content_type: The MIME type stored with the object

  Returns:
    The GCS URI of the stored object

  Raises:
    UploadError: If the payload is empty or not valid base64
  """
  if not bytes_base64:
    raise UploadError("Could not upload image to GCS: empty image")
  try:
    content_bytes = base64.b64decode(bytes_base64, validate=True)
  except (binascii.Error, ValueError) as e:
    raise UploadError(f"Could not upload image to GCS: {e}") from e

  location = DecomposedUri(bucket_name=bucket_name, file_name=object_name)
  return upload_bytes_to_gcs(content_bytes, location.uri, content_type)


def download_bytes_from_gcs(gcs_uri: str) -> bytes:
  """Download the object at `gcs_uri`."""
  return _blob(decompose_uri(gcs_uri)).download_as_bytes()


def download_media_from_gcs(gcs_uri: str) -> str:
  """Download an object and return its content base64 encoded."""
  return base64.b64encode(download_bytes_from_gcs(gcs_uri)).decode("ascii")


def get_signed_url(gcs_uri: str) -> str:
  """A V4 signed GET URL for the object, valid for the configured minutes.

  Raises:
    ValueError: If the GCS URI format is invalid
  """
  expiration = datetime.timedelta(minutes=config.SIGNED_URL_EXPIRATION_MINUTES)
  return _blob(decompose_uri(gcs_uri)).generate_signed_url(
    version="v4",
    expiration=expiration,
    method="GET",
  )

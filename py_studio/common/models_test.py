"""Tests for the models module."""

import pytest
from common import models


def test_model_result_from_prediction_filtered():
  """A filter reason makes the result FILTERED."""
  result = models.ModelResult.from_prediction({
    "raiFilteredReason": "Filtered",
    "bytesBase64Encoded": "ignored",
  })

  assert result.kind == models.ModelResultKind.FILTERED
  assert result.rai_filtered_reason == "Filtered"


def test_model_result_from_prediction_inline():
  """Base64 predictions become INLINE results."""
  result = models.ModelResult.from_prediction({
    "bytesBase64Encoded": "QUJD",
    "mimeType": "image/jpeg",
    "prompt": "Enhanced",
  })

  assert result == models.ModelResult(
    kind=models.ModelResultKind.INLINE,
    bytes_base64="QUJD",
    mime_type="image/jpeg",
    prompt="Enhanced",
  )
  assert result.format == "JPEG"


def test_model_result_from_prediction_storage():
  """GCS predictions become STORAGE results."""
  result = models.ModelResult.from_prediction({
    "gcsUri": "gs://bucket/a.png",
    "mimeType": "image/png",
  })

  assert result.kind == models.ModelResultKind.STORAGE
  assert result.gcs_uri == "gs://bucket/a.png"
  assert result.format == "PNG"


def test_model_result_from_content_part():
  """Gemini parts map to INLINE or STORAGE, text to None."""
  inline = models.ModelResult.from_content_part(
    {"inlineData": {
      "mimeType": "image/png",
      "data": "QUJD"
    }})
  stored = models.ModelResult.from_content_part(
    {"fileData": {
      "mimeType": "image/webp",
      "fileUri": "gs://bucket/a.webp"
    }})

  assert inline.kind == models.ModelResultKind.INLINE
  assert inline.bytes_base64 == "QUJD"
  assert stored.kind == models.ModelResultKind.STORAGE
  assert stored.format == "WEBP"
  assert models.ModelResult.from_content_part({"text": "hello"}) is None


def test_app_context_library_uri():
  """Library folders live under the user's directory."""
  context = models.AppContext(gcs_uri="gs://bucket/root/", user_id="u1")

  assert context.library_uri("edited-images") == (
    "gs://bucket/root/u1/edited-images")


@pytest.mark.parametrize(
  "context",
  [
    models.AppContext(),
    models.AppContext(gcs_uri="gs://bucket"),
    models.AppContext(user_id="u1"),
  ],
)
def test_app_context_library_uri_requires_context(context):
  """Both the library root and the user are required."""
  with pytest.raises(ValueError, match="No provided app context"):
    context.library_uri("generated-images")


def test_upscale_source_requires_exactly_one_source():
  """An upscale source is a URI or base64, never both."""
  assert models.UpscaleSource(uri="gs://bucket/a.png").uri
  assert models.UpscaleSource(base64="QUJD").base64

  with pytest.raises(ValueError):
    models.UpscaleSource()
  with pytest.raises(ValueError):
    models.UpscaleSource(uri="gs://bucket/a.png", base64="QUJD")


def test_generate_image_form_from_dict():
  """Request params fill the form with defaults."""
  form = models.GenerateImageForm.from_dict({
    "prompt": "a cat",
    "model_version": "gemini-2.5-flash-image",
    "seed_number": 12,
    "sample_count": "2",
    "light": "soft",
  })

  assert form.prompt == "a cat"
  assert form.seed_number == "12"
  assert form.sample_count == 2
  assert form.light == "soft"
  assert form.aspect_ratio == "1:1"
  assert form.style == "photo"


def test_edit_image_form_from_dict():
  """Numeric edit params are normalized."""
  form = models.EditImageForm.from_dict({
    "prompt": "add a hat",
    "model_version": "imagen-3.0-capability-001",
    "input_image": "QUJD",
    "mask_dilation": 0.05,
    "width": "896",
  })

  assert form.mask_dilation == "0.05"
  assert form.width == 896
  assert form.edit_mode == "EDIT_MODE_INPAINT_INSERTION"


def test_display_image_as_dict_uses_client_keys():
  """Display records serialize with camelCase keys."""
  image = models.DisplayImage(
    src="https://signed",
    gcs_uri="gs://bucket/a.png",
    format="PNG",
    prompt="p",
    alt_text="Generated image a.png",
    key="a",
    width=1,
    height=2,
    ratio="1:1",
    date="October 18, 2026",
    author="u1",
    model_version="m",
    mode="Generated",
  )

  assert image.as_dict["gcsUri"] == "gs://bucket/a.png"
  assert image.as_dict["altText"] == "Generated image a.png"
  assert image.as_dict["modelVersion"] == "m"
  assert models.ImageWarning(warning="w").as_dict == {"warning": "w"}
  assert models.ImageError(error="e").as_dict == {"error": "e"}
  assert models.UpscaleResult(new_gcs_uri="gs://b/u.png",
                              mime_type="image/png").as_dict == {
                                "newGcsUri": "gs://b/u.png",
                                "mimeType": "image/png",
                              }

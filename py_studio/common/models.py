"""Models for image generation requests and results."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ImageMode(Enum):
  """How a displayed image was produced."""
  GENERATED = "Generated"
  EDITED = "Edited"


class EditMode(Enum):
  """Imagen edit modes."""
  INPAINT_INSERTION = "EDIT_MODE_INPAINT_INSERTION"
  INPAINT_REMOVAL = "EDIT_MODE_INPAINT_REMOVAL"
  OUTPAINT = "EDIT_MODE_OUTPAINT"
  BGSWAP = "EDIT_MODE_BGSWAP"


@dataclass(kw_only=True)
class GenerateImageForm:
  """User input for a prompt-to-image generation."""
  prompt: str
  model_version: str
  style: str = "photo"
  secondary_style: str = ""
  image_colors: str = ""
  light: str = ""
  light_coming_from: str = ""
  perspective: str = ""
  shot_from: str = ""
  use_case: str = ""
  aspect_ratio: str = "1:1"
  seed_number: str | None = None
  sample_count: int = 4
  negative_prompt: str = ""
  person_generation: str = ""
  output_mime_type: str = "image/png"

  @classmethod
  def from_dict(cls, data: dict[str, Any]) -> GenerateImageForm:
    """Create a form from request parameters."""
    seed = data.get("seed_number")
    return cls(
      prompt=data.get("prompt") or "",
      model_version=data.get("model_version") or "",
      style=data.get("style") or "photo",
      secondary_style=data.get("secondary_style") or "",
      image_colors=data.get("image_colors") or "",
      light=data.get("light") or "",
      light_coming_from=data.get("light_coming_from") or "",
      perspective=data.get("perspective") or "",
      shot_from=data.get("shot_from") or "",
      use_case=data.get("use_case") or "",
      aspect_ratio=data.get("aspect_ratio") or "1:1",
      seed_number=str(seed) if seed not in (None, "") else None,
      sample_count=int(data.get("sample_count") or 4),
      negative_prompt=data.get("negative_prompt") or "",
      person_generation=data.get("person_generation") or "",
      output_mime_type=data.get("output_mime_type") or "image/png",
    )


@dataclass(kw_only=True)
class EditImageForm:
  """User input for a reference-guided edit.

  Numeric fields arrive as strings from the form and are parsed when the
  request is built.
  """
  prompt: str
  model_version: str
  input_image: str
  input_mask: str = ""
  edit_mode: str = EditMode.INPAINT_INSERTION.value
  mask_dilation: str = "0.01"
  base_steps: str = "35"
  sample_count: str = "4"
  negative_prompt: str = ""
  output_mime_type: str = "image/png"
  person_generation: str = "allow_adult"
  ratio: str = "1:1"
  width: int = 0
  height: int = 0

  @classmethod
  def from_dict(cls, data: dict[str, Any]) -> EditImageForm:
    """Create a form from request parameters."""
    return cls(
      prompt=data.get("prompt") or "",
      model_version=data.get("model_version") or "",
      input_image=data.get("input_image") or "",
      input_mask=data.get("input_mask") or "",
      edit_mode=data.get("edit_mode") or EditMode.INPAINT_INSERTION.value,
      mask_dilation=str(data.get("mask_dilation") or "0.01"),
      base_steps=str(data.get("base_steps") or "35"),
      sample_count=str(data.get("sample_count") or "4"),
      negative_prompt=data.get("negative_prompt") or "",
      output_mime_type=data.get("output_mime_type") or "image/png",
      person_generation=data.get("person_generation") or "allow_adult",
      ratio=data.get("ratio") or "1:1",
      width=int(data.get("width") or 0),
      height=int(data.get("height") or 0),
    )


@dataclass(kw_only=True)
class AppContext:
  """The acting user and the root of their image library."""
  gcs_uri: str | None = None
  user_id: str | None = None

  def library_uri(self, folder: str) -> str:
    """Return the library folder URI for the user.

    Raises:
      ValueError: If the context is incomplete.
    """
    if not self.gcs_uri or not self.user_id:
      raise ValueError("No provided app context")
    return f"{self.gcs_uri.rstrip('/')}/{self.user_id}/{folder}"


class ModelResultKind(Enum):
  """Discriminant for ModelResult."""
  INLINE = "inline"
  STORAGE = "storage"
  FILTERED = "filtered"


@dataclass(kw_only=True)
class ModelResult:
  """One image returned by the model, in one of three shapes."""
  kind: ModelResultKind
  mime_type: str = "image/png"
  prompt: str | None = None
  bytes_base64: str | None = None
  gcs_uri: str | None = None
  rai_filtered_reason: str | None = None

  @property
  def format(self) -> str:
    """The content format, e.g. 'PNG'."""
    return self.mime_type.replace("image/", "").upper()

  @classmethod
  def from_prediction(cls, prediction: dict[str, Any]) -> ModelResult:
    """Create a result from an Imagen prediction dictionary."""
    if "raiFilteredReason" in prediction:
      return cls(
        kind=ModelResultKind.FILTERED,
        rai_filtered_reason=str(prediction["raiFilteredReason"]),
      )
    if "bytesBase64Encoded" in prediction:
      return cls(
        kind=ModelResultKind.INLINE,
        bytes_base64=prediction["bytesBase64Encoded"],
        mime_type=prediction.get("mimeType") or "image/png",
        prompt=prediction.get("prompt"),
      )
    return cls(
      kind=ModelResultKind.STORAGE,
      gcs_uri=prediction.get("gcsUri") or "",
      mime_type=prediction.get("mimeType") or "image/png",
      prompt=prediction.get("prompt"),
    )

  @classmethod
  def from_content_part(
    cls,
    part: dict[str, Any],
    prompt: str | None = None,
  ) -> ModelResult | None:
    """Create a result from a Gemini content part, or None for text parts."""
    if inline_data := part.get("inlineData"):
      return cls(
        kind=ModelResultKind.INLINE,
        bytes_base64=inline_data.get("data"),
        mime_type=inline_data.get("mimeType") or "image/png",
        prompt=prompt,
      )
    if file_data := part.get("fileData"):
      return cls(
        kind=ModelResultKind.STORAGE,
        gcs_uri=file_data.get("fileUri") or "",
        mime_type=file_data.get("mimeType") or "image/png",
        prompt=prompt,
      )
    return None


@dataclass(kw_only=True)
class DisplayImage:
  """A normalized image, ready to be displayed by the client."""
  src: str
  gcs_uri: str
  format: str
  prompt: str
  alt_text: str
  key: str
  width: int
  height: int
  ratio: str
  date: str
  author: str
  model_version: str
  mode: str

  @property
  def as_dict(self) -> dict:
    """Convert to the dictionary sent to the client."""
    return {
      'src': self.src,
      'gcsUri': self.gcs_uri,
      'format': self.format,
      'prompt': self.prompt,
      'altText': self.alt_text,
      'key': self.key,
      'width': self.width,
      'height': self.height,
      'ratio': self.ratio,
      'date': self.date,
      'author': self.author,
      'modelVersion': self.model_version,
      'mode': self.mode,
    }


@dataclass(frozen=True)
class ImageWarning:
  """Stands in for an image the model declined to produce."""
  warning: str

  @property
  def as_dict(self) -> dict:
    """Convert to the dictionary sent to the client."""
    return {'warning': self.warning}


@dataclass(frozen=True)
class ImageError:
  """Stands in for an image that could not be normalized."""
  error: str

  @property
  def as_dict(self) -> dict:
    """Convert to the dictionary sent to the client."""
    return {'error': self.error}


DisplayResult = DisplayImage | ImageWarning | ImageError


@dataclass(frozen=True)
class OperationError:
  """A whole-call failure, with a user-facing message."""
  error: str

  @property
  def as_dict(self) -> dict:
    """Convert to the dictionary sent to the client."""
    return {'error': self.error}


@dataclass(kw_only=True)
class UpscaleSource:
  """The image to upscale: exactly one of a GCS URI or base64 bytes."""
  uri: str | None = None
  base64: str | None = None

  def __post_init__(self):
    if bool(self.uri) == bool(self.base64):
      raise ValueError("Exactly one of 'uri' or 'base64' must be provided.")


@dataclass(kw_only=True)
class UpscaleResult:
  """Location of an upscaled image."""
  new_gcs_uri: str
  mime_type: str

  @property
  def as_dict(self) -> dict:
    """Convert to the dictionary sent to the client."""
    return {'newGcsUri': self.new_gcs_uri, 'mimeType': self.mime_type}


@dataclass(kw_only=True)
class ImageBatch:
  """Shared metadata for a batch of results being normalized."""
  aspect_ratio: str
  width: int
  height: int
  used_prompt: str
  user_id: str
  model_version: str
  mode: ImageMode

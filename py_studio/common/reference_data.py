"""Static lookup tables for image generation."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RatioPixels:
  """Output size for an aspect ratio."""
  ratio: str
  width: int
  height: int


RATIO_TO_PIXEL: list[RatioPixels] = [
  RatioPixels("1:1", 1024, 1024),
  RatioPixels("9:16", 768, 1408),
  RatioPixels("16:9", 1408, 768),
  RatioPixels("3:4", 896, 1280),
  RatioPixels("4:3", 1280, 896),
]

# Optional form fields appended to the prompt as "<value> <field name>"
FULL_PROMPT_FIELDS: list[str] = [
  "image_colors",
  "light",
  "light_coming_from",
  "perspective",
  "shot_from",
]

QUALITY_MODIFIERS_BY_USE_CASE: dict[str, str] = {
  "Food, insects, plants (still life)":
  ", High detail, precise focusing, controlled lighting",
  "Sports, wildlife (motion)":
  ", Fast shutter speed, movement tracking",
  "Astronomical, landscape (wide-angle)":
  ", Long exposure times, sharp focus, long exposure, smooth water or clouds",
}


def get_ratio_pixels(ratio: str) -> RatioPixels | None:
  """Return the output size for an aspect ratio, if known."""
  return next((item for item in RATIO_TO_PIXEL if item.ratio == ratio), None)

"""Global configuration constants."""

import os

# Google Cloud Project ID
PROJECT_ID = os.environ.get("GOOGLE_CLOUD_PROJECT", "")
PROJECT_LOCATION = os.environ.get("VERTEX_API_LOCATION", "us-central1")

# Root of the per-user image library (gs://bucket/path)
USER_LIBRARY_GCS_URI = os.environ.get("USER_LIBRARY_GCS_URI", "")

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"

# Nano Banana is only served from a few regions
GEMINI_FLASH_IMAGE_MODEL = "gemini-2.5-flash-image"
GEMINI_FLASH_IMAGE_LOCATION = "us-central1"

UPSCALE_MODEL = "imagegeneration@002"
UPSCALE_TIMEOUT_SEC = 60

SIGNED_URL_EXPIRATION_MINUTES = 60

# Library folders, relative to {USER_LIBRARY_GCS_URI}/{user_id}
GENERATED_IMAGES_FOLDER = "generated-images"
EDITED_IMAGES_FOLDER = "edited-images"
UPSCALED_IMAGES_FOLDER = "upscaled-images"

# Upper bound on a single Vertex AI HTTP call
VERTEX_REQUEST_TIMEOUT_SEC = 300

# Origins allowed to call the HTTPS functions from a browser
ALLOWED_ORIGINS = [
  origin.strip()
  for origin in os.environ.get("ALLOWED_ORIGINS", "").split(",")
  if origin.strip()
]

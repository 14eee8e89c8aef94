"""Cloud Functions entry point."""

import logging

from firebase_admin import initialize_app
from functions import image_fns

# Configure basic logging for the application (primarily for emulator visibility)
logging.basicConfig(level=logging.INFO)

app = initialize_app()

# Export the image functions
generate_image = image_fns.generate_image
edit_image = image_fns.edit_image
upscale_image = image_fns.upscale_image

"""Tests for the prompt_builder module."""

import pytest
from common import models, prompt_builder


@pytest.mark.parametrize(
  "sentence, expected",
  [
    ("hello WORLD", "Hello world"),
    ("first one. second one! third? fourth",
     "First one. Second one! Third? Fourth"),
    ("  too   many    spaces  ", "Too many spaces"),
    ("a cat, , a dog", "A cat, a dog"),
    ("end.  next", "End. Next"),
  ],
)
def test_normalize_sentence(sentence, expected):
  """Sentences are lowercased, capitalized and tidied."""
  assert prompt_builder.normalize_sentence(sentence) == expected


@pytest.mark.parametrize(
  "sentence",
  [
    "A Photo Of A cat. IT sleeps!  on   the sofa",
    "x , , , y",
    "one.two. three",
    "",
  ],
)
def test_normalize_sentence_is_idempotent(sentence):
  """Normalizing twice changes nothing."""
  once = prompt_builder.normalize_sentence(sentence)

  assert prompt_builder.normalize_sentence(once) == once


def test_generate_prompt_style_only():
  """Style and subject form the base prompt."""
  form = models.GenerateImageForm(
    prompt="A Red Fox in the snow",
    model_version="imagen-4.0-generate-001",
    style="photo",
    secondary_style="Cinematic",
  )

  assert prompt_builder.generate_prompt(
    form) == "A cinematic photo of a red fox in the snow"


def test_generate_prompt_with_modifiers_and_use_case():
  """Modifiers and use-case hints are appended."""
  form = models.GenerateImageForm(
    prompt="a hummingbird",
    model_version="imagen-4.0-generate-001",
    style="photo",
    secondary_style="macro",
    light="Golden hour",
    shot_from="Low angle",
    use_case="Sports, wildlife (motion)",
  )

  assert prompt_builder.generate_prompt(form) == (
    "A macro photo of a hummingbird, golden hour light, low angle shot from, "
    "fast shutter speed, movement tracking")


def test_generate_prompt_unknown_use_case_adds_nothing():
  """Unknown use cases add no hints."""
  form = models.GenerateImageForm(
    prompt="a lake",
    model_version="imagen-4.0-generate-001",
    style="drawing",
    secondary_style="pencil",
    use_case="Portraits",
  )

  assert prompt_builder.generate_prompt(form) == "A pencil drawing of a lake"

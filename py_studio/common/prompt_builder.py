"""Builds the full generation prompt from the user's form."""

import re

from common import models, reference_data

_MULTIPLE_SPACES_RE = re.compile(r'  +')


def normalize_sentence(sentence: str) -> str:
  """Lowercase a text and capitalize the start of each sentence.

  Sentences end with a word ending in '.', '!' or '?'. Repeated spaces are
  collapsed, the result is trimmed and ", ," is collapsed to ",".
  """
  words = sentence.lower().split(' ')

  normalized_words = []
  new_sentence = True
  for word in words:
    # Empty words come from repeated spaces and must not consume the flag
    if new_sentence and word:
      word = word[:1].upper() + word[1:]
      new_sentence = False
    if word.endswith(('.', '!', '?')):
      new_sentence = True
    normalized_words.append(word)

  normalized = ' '.join(normalized_words)
  normalized = _MULTIPLE_SPACES_RE.sub(' ', normalized).strip()
  while ', ,' in normalized:
    normalized = normalized.replace(', ,', ',')
  return normalized


def generate_prompt(form: models.GenerateImageForm) -> str:
  """Build the full prompt: style, modifiers and use-case quality hints."""
  full_prompt = f"A {form.secondary_style} {form.style} of {form.prompt}"

  parameters = ''
  for field_name in reference_data.FULL_PROMPT_FIELDS:
    value = getattr(form, field_name, '')
    if value:
      parameters += f" {value} {field_name.replace('_', ' ')}, "
  if parameters:
    full_prompt = f"{full_prompt}, {parameters}"

  full_prompt += reference_data.QUALITY_MODIFIERS_BY_USE_CASE.get(
    form.use_case, '')

  return normalize_sentence(full_prompt)

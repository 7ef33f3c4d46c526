# SPDX-License-Identifier: MIT
"""Decoding of provider success envelopes.

Provider response shapes drift between API generations, so text decoding tries
each known envelope in priority order before giving up:

1. chat completions: ``choices[0].message.content``
2. responses API convenience field: ``output_text``
3. responses API items: ``output[*].content[*].text``

Image responses carry ``data[0].b64_json`` or, for older models,
``data[0].url``.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from llm.errors import ImageGenerationFailedError, InvalidResponseError


class _Envelope(BaseModel):
    model_config = ConfigDict(extra="ignore")


class ChatMessage(_Envelope):
    content: str | None = None


class ChatChoice(_Envelope):
    message: ChatMessage


class ChatCompletion(_Envelope):
    """Chat completions success envelope."""

    choices: list[ChatChoice]


class ContentPart(_Envelope):
    type: str | None = None
    text: str | None = None


class OutputItem(_Envelope):
    content: list[ContentPart] = []


class ResponsesOutput(_Envelope):
    """Responses API success envelope."""

    output_text: str | None = None
    output: list[OutputItem] = []


class ImageDatum(_Envelope):
    b64_json: str | None = None
    url: str | None = None


class ImageResponse(_Envelope):
    """Image generation success envelope."""

    data: list[ImageDatum]


@dataclass(frozen=True)
class ImagePayload:
    """Decoded image result: raw bytes or a URL still to be fetched."""

    data: bytes | None = None
    url: str | None = None


def _load_json(body: bytes) -> Any:
    try:
        return json.loads(body)
    except (ValueError, UnicodeDecodeError) as exc:
        raise InvalidResponseError("Response body is not valid JSON") from exc


def _from_chat(payload: Any) -> str | None:
    try:
        completion = ChatCompletion.model_validate(payload)
    except ValidationError:
        return None
    if not completion.choices:
        return None
    return completion.choices[0].message.content


def _from_responses(payload: Any) -> str | None:
    try:
        response = ResponsesOutput.model_validate(payload)
    except ValidationError:
        return None
    if response.output_text is not None:
        return response.output_text
    texts = [
        part.text
        for item in response.output
        for part in item.content
        if part.text is not None and part.type in (None, "output_text", "text")
    ]
    if not texts:
        return None
    return "".join(texts)


def decode_text(body: bytes) -> str:
    """Return generated text from a text completion response body.

    Raises:
        InvalidResponseError: If the body is not JSON or matches no known
            envelope.
    """
    payload = _load_json(body)
    if not isinstance(payload, dict):
        raise InvalidResponseError("Unexpected text response shape")
    for decoder in (_from_chat, _from_responses):
        text = decoder(payload)
        if text is not None:
            return text
    raise InvalidResponseError("Unexpected text response shape")


def decode_image(body: bytes) -> ImagePayload:
    """Return the first image from an image generation response body.

    Raises:
        InvalidResponseError: If the body is not JSON or lacks a ``data`` list.
        ImageGenerationFailedError: If no image is present or the base64
            payload cannot be decoded.
    """
    payload = _load_json(body)
    try:
        response = ImageResponse.model_validate(payload)
    except ValidationError as exc:
        raise InvalidResponseError("Unexpected image response shape") from exc
    if not response.data:
        raise ImageGenerationFailedError("Provider returned no images")
    first = response.data[0]
    if first.b64_json:
        try:
            return ImagePayload(data=base64.b64decode(first.b64_json, validate=True))
        except (binascii.Error, ValueError) as exc:
            raise ImageGenerationFailedError(
                "Image payload is not valid base64"
            ) from exc
    if first.url:
        return ImagePayload(url=first.url)
    raise ImageGenerationFailedError("Image entry has neither b64_json nor url")


__all__ = ["ImagePayload", "decode_image", "decode_text"]

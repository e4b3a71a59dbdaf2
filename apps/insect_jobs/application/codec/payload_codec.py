"""Payload Codec.

ImagePayload ↔ JSON-safe wire dict 변환.

image_bytes 필드는 디코딩 시 다음 태그 형태를 모두 수용한다:
    - native bytes / bytearray / memoryview (그대로 통과)
    - {"type": "Buffer", "data": [0..255, ...]}   (Node Buffer JSON)
    - {"__type__": "bytes", "__value__": "<base64>"}
인코딩은 항상 마지막 (base64 태그) 형태로 기록한다.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any

from insect_jobs.application.common.exceptions import PayloadCorruptError
from insect_jobs.domain.value_objects import ImagePayload

BYTES_TYPE_TAG = "bytes"
BUFFER_TYPE_TAG = "Buffer"


class PayloadCodec:
    """작업 payload wire 코덱 (stateless)."""

    def encode(self, payload: ImagePayload) -> dict[str, Any]:
        wire: dict[str, Any] = {
            "image_bytes": {
                "__type__": BYTES_TYPE_TAG,
                "__value__": base64.b64encode(bytes(payload.image_bytes)).decode("ascii"),
            },
            "mime_type": payload.mime_type,
            "original_file_name": payload.original_file_name,
        }
        if payload.user_id is not None:
            wire["user_id"] = payload.user_id
        return wire

    def decode(self, wire: dict[str, Any] | str | bytes) -> ImagePayload:
        """wire → ImagePayload.

        Raises:
            PayloadCorruptError: 형태가 맞지 않는 경우
        """
        if isinstance(wire, (str, bytes)):
            try:
                wire = json.loads(wire)
            except (ValueError, UnicodeDecodeError) as e:
                raise PayloadCorruptError(f"invalid JSON: {e}") from e

        if not isinstance(wire, dict):
            raise PayloadCorruptError(f"expected object, got {type(wire).__name__}")

        mime_type = wire.get("mime_type")
        if not isinstance(mime_type, str) or not mime_type:
            raise PayloadCorruptError("missing mime_type")

        original_file_name = wire.get("original_file_name") or ""
        if not isinstance(original_file_name, str):
            raise PayloadCorruptError("original_file_name must be a string")

        user_id = wire.get("user_id")
        if user_id is not None and not isinstance(user_id, str):
            raise PayloadCorruptError("user_id must be a string")

        return ImagePayload(
            image_bytes=self._decode_bytes(wire.get("image_bytes")),
            mime_type=mime_type,
            original_file_name=original_file_name,
            user_id=user_id,
        )

    @staticmethod
    def _decode_bytes(value: Any) -> bytes:
        if isinstance(value, (bytes, bytearray, memoryview)):
            return bytes(value)

        if not isinstance(value, dict):
            raise PayloadCorruptError(f"unsupported image_bytes form: {type(value).__name__}")

        if value.get("type") == BUFFER_TYPE_TAG:
            data = value.get("data")
            if not isinstance(data, list):
                raise PayloadCorruptError("Buffer data must be a list")
            if not all(type(b) is int and 0 <= b <= 255 for b in data):
                raise PayloadCorruptError("Buffer data must contain integers in 0..255")
            return bytes(data)

        if value.get("__type__") == BYTES_TYPE_TAG:
            encoded = value.get("__value__")
            if not isinstance(encoded, str):
                raise PayloadCorruptError("bytes value must be a base64 string")
            try:
                return base64.b64decode(encoded, validate=True)
            except binascii.Error as e:
                raise PayloadCorruptError(f"invalid base64: {e}") from e

        raise PayloadCorruptError("unknown image_bytes tag")

"""Image Payload Value Object."""

from __future__ import annotations

from dataclasses import dataclass

from insect_jobs.domain.exceptions.job import PayloadValidationError


@dataclass(frozen=True, slots=True)
class ImagePayload:
    """분류 요청 작업 단위의 입력.

    Attributes:
        image_bytes: 원본 이미지 바이트
        mime_type: 이미지 MIME 타입 (예: image/jpeg)
        original_file_name: 업로드 파일명
        user_id: 요청 사용자 ID (선택, core에서는 불투명 값)
    """

    image_bytes: bytes
    mime_type: str
    original_file_name: str = ""
    user_id: str | None = None

    @property
    def size(self) -> int:
        return len(self.image_bytes)

    def validate(self) -> None:
        """필수 필드 검증.

        Raises:
            PayloadValidationError: image_bytes 비어있음 / mime_type 누락
        """
        if not isinstance(self.image_bytes, (bytes, bytearray, memoryview)):
            raise PayloadValidationError("image_bytes", "must be bytes")
        if len(self.image_bytes) == 0:
            raise PayloadValidationError("image_bytes", "must not be empty")
        if not isinstance(self.mime_type, str) or not self.mime_type.strip():
            raise PayloadValidationError("mime_type", "is required")
        if self.user_id is not None and not isinstance(self.user_id, str):
            raise PayloadValidationError("user_id", "must be a string")

"""Identification DTO."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class InsectIdentification:
    """Vision 모델 식별 결과.

    Attributes:
        name: 일반명
        scientific_name: 학명 (genus species)
        description: 형태/크기/색상 등 설명
        confidence: 신뢰도 (0-1, 선택)
        additional_info: habitat / behavior / diet 등 부가 정보
    """

    name: str
    scientific_name: str
    description: str = ""
    confidence: float | None = None
    additional_info: dict[str, Any] = field(default_factory=dict)

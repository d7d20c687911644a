"""생체신호 추세 합성

실측 데이터 사이의 화면용 추세를 만들기 위한 난수 기반 시계열 생성기.
시각 라벨은 인덱스에서 만든 30분 간격의 표시용 값이며 실제 시각이 아니다.
"""

from __future__ import annotations

import random
from typing import Sequence

from app.models.vitals import TrendPoint

DEFAULT_LENGTH = 20
LIVE_LABEL = "now"


def _time_label(index: int) -> str:
    return f"{index // 2:02d}:{'00' if index % 2 == 0 else '30'}"


def jitter(variance: float, rng: random.Random | None = None) -> float:
    """±variance/2 범위의 균등 난수"""
    source = rng or random
    return source.uniform(-variance / 2, variance / 2)


def generate_series(
    baseline: float,
    variance: float,
    length: int = DEFAULT_LENGTH,
    rng: random.Random | None = None,
) -> tuple[TrendPoint, ...]:
    """기준값 주변의 합성 시계열 생성

    Args:
        baseline: 기준값
        variance: 전체 변동폭(±variance/2)
        length: 점 개수
        rng: 난수 생성기(테스트용, 선택)

    Returns:
        추세 점 목록
    """
    return tuple(
        TrendPoint(time=_time_label(index), value=baseline + jitter(variance, rng))
        for index in range(length)
    )


def advance_series(
    previous: Sequence[TrendPoint],
    drift_variance: float,
    rng: random.Random | None = None,
    anchor: float | None = None,
) -> tuple[TrendPoint, ...]:
    """시계열을 한 단계 진행

    가장 오래된 점을 버리고 현재 값(anchor, 없으면 마지막 점)에
    드리프트를 더한 점을 붙인다.

    Args:
        previous: 기존 시계열
        drift_variance: 드리프트 변동폭(±drift_variance/2)
        rng: 난수 생성기(테스트용, 선택)
        anchor: 채널의 현재 값(선택)

    Returns:
        길이가 같은 새 시계열

    Raises:
        ValueError: 빈 시계열인 경우
    """
    if not previous:
        raise ValueError("빈 시계열은 진행할 수 없음")
    base = previous[-1].value if anchor is None else anchor
    latest = base + jitter(drift_variance, rng)
    return tuple(previous[1:]) + (TrendPoint(time=LIVE_LABEL, value=latest),)

import math


def round_half_up(value: float) -> int:
    """0.5는 항상 올림 (파이썬 기본 round의 은행가 반올림과 다름)"""
    return int(math.floor(value + 0.5))


def round_to_half(value: float) -> float:
    """0.5 단위 반올림: 2.3 -> 2.5, 2.2 -> 2.0"""
    return round_half_up(value * 2) / 2


def clamp(value, low, high):
    return max(low, min(high, value))

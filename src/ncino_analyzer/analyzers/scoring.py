"""スコア・割合計算の共通処理。"""

import math

# セキュリティスコアの減点係数
BYPASS_PERCENTAGE_PENALTY = 0.3
HIGH_SEVERITY_PENALTY = 5
MEDIUM_SEVERITY_PENALTY = 2


def round_half_up(value: float) -> int:
    """0.5を常に切り上げる丸め (組み込みroundの偶数丸めとは異なる)。"""
    return math.floor(value + 0.5)


def raw_percentage(count: int, total: int) -> float:
    """count / total を百分率で返す。totalが0の場合は0。"""
    if total == 0:
        return 0.0
    return count / total * 100


def percentage(count: int, total: int) -> int:
    return round_half_up(raw_percentage(count, total))


def security_score(with_bypass: int, total: int, high_count: int, medium_count: int) -> int:
    """バイパスの割合と重大度から0-100のセキュリティスコアを算出する。

    減点はすべて累積してから最後に一度だけ丸め・クランプする。
    """
    score = 100.0
    score -= raw_percentage(with_bypass, total) * BYPASS_PERCENTAGE_PENALTY
    score -= high_count * HIGH_SEVERITY_PENALTY
    score -= medium_count * MEDIUM_SEVERITY_PENALTY
    return max(0, min(100, round_half_up(score)))

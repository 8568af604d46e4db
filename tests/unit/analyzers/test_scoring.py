"""スコア計算のユニットテスト。"""

from ncino_analyzer.analyzers.scoring import percentage, raw_percentage, round_half_up, security_score


class TestRoundHalfUp:
    def test_rounds_half_away_from_even(self) -> None:
        assert round_half_up(82.5) == 83
        assert round_half_up(0.5) == 1
        assert round_half_up(2.5) == 3

    def test_rounds_down_below_half(self) -> None:
        assert round_half_up(82.49) == 82


class TestPercentage:
    def test_zero_total(self) -> None:
        assert raw_percentage(0, 0) == 0.0
        assert percentage(0, 0) == 0

    def test_rounded(self) -> None:
        assert percentage(1, 3) == 33
        assert percentage(2, 3) == 67


class TestSecurityScore:
    def test_no_bypass(self) -> None:
        assert security_score(0, 10, 0, 0) == 100

    def test_empty_input(self) -> None:
        assert security_score(0, 0, 0, 0) == 100

    def test_single_high(self) -> None:
        assert security_score(1, 1, 1, 0) == 65

    def test_uses_unrounded_percentage(self) -> None:
        # 1/3 = 33.33..% -> 100 - 10 - 2 = 88
        assert security_score(1, 3, 0, 1) == 88

    def test_clamped_to_zero(self) -> None:
        assert security_score(20, 20, 20, 0) == 0

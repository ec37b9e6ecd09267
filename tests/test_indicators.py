"""Tests for pure indicator functions."""

import pytest

from stock_assistant.analytics.indicators import (
    compute_indicators,
    generate_signal,
    moving_average,
    rsi,
    valuation_signal,
    volume_ratio,
)
from stock_assistant.domain.models import PricePoint


def _bars(closes, volume=1000.0):
    return [
        PricePoint(date=f"2024-01-{i + 1:02d}", open=c, high=c, low=c, close=c, volume=volume)
        for i, c in enumerate(closes)
    ]


class TestMovingAverage:
    def test_unavailable_when_series_too_short(self):
        assert moving_average([1.0] * 19, 20) is None

    def test_mean_of_last_period_closes(self):
        closes = list(range(1, 31))
        assert moving_average(closes, 20) == pytest.approx(20.5)

    def test_nan_values_are_dropped(self):
        assert moving_average([float("nan"), 2.0, 4.0], 2) == pytest.approx(3.0)


class TestRSI:
    def test_unavailable_with_fewer_than_period_plus_one_closes(self):
        assert rsi(list(range(14)), 14) is None

    def test_only_gains_gives_100(self):
        assert rsi([float(x) for x in range(1, 16)], 14) == 100.0

    def test_only_losses_gives_0(self):
        assert rsi([float(x) for x in range(30, 15, -1)], 14) == pytest.approx(0.0)

    def test_bounded(self):
        closes = [100, 102, 101, 103, 99, 98, 104, 105, 103, 101, 100, 102, 104, 103, 105, 107]
        value = rsi(closes, 14)
        assert value is not None
        assert 0.0 <= value <= 100.0

    def test_equal_gains_and_losses_is_50(self):
        closes = [100.0, 101.0] * 8
        assert rsi(closes[:15], 14) == pytest.approx(50.0)


class TestVolumeRatio:
    def test_no_volumes(self):
        assert volume_ratio([]) is None

    def test_zero_average(self):
        assert volume_ratio([0.0] * 20) is None

    def test_flat_volume_is_one(self):
        assert volume_ratio([500.0] * 25) == pytest.approx(1.0)

    def test_spike(self):
        volumes = [100.0] * 19 + [300.0]
        # mean of last 20 = 110
        assert volume_ratio(volumes) == pytest.approx(300.0 / 110.0)


class TestSignal:
    def test_uptrend_with_oversold_rsi_is_strong_buy(self):
        signal = generate_signal(110.0, 105.0, 100.0, 25.0)
        assert signal.action == "STRONG_BUY"
        assert signal.strength == 3
        assert signal.reasoning == "Price above 20-day MA, Golden cross pattern, RSI indicates oversold"

    def test_downtrend_with_overbought_rsi_is_strong_sell(self):
        signal = generate_signal(90.0, 95.0, 100.0, 80.0)
        assert signal.action == "STRONG_SELL"
        assert signal.strength == 3

    def test_ma_part_skipped_without_ma50(self):
        signal = generate_signal(110.0, 105.0, None, 25.0)
        assert signal.action == "BUY"
        assert signal.strength == 1
        assert signal.reasoning == "Price above 20-day MA, RSI indicates oversold"

    def test_no_inputs_is_neutral(self):
        signal = generate_signal(None, None, None, None)
        assert signal.action == "NEUTRAL"
        assert signal.strength == 0
        assert signal.reasoning == "Neutral market conditions"

    def test_overbought_in_uptrend_cancels_to_sell(self):
        signal = generate_signal(110.0, 105.0, 100.0, 75.0)
        assert signal.action == "SELL"
        assert signal.strength == 1


@pytest.mark.parametrize(
    "pe,peg,expected",
    [
        (None, None, "Unknown"),
        (12.0, None, "Undervalued"),
        (45.0, 0.5, "Overvalued"),
        (20.0, 0.8, "Good value"),
        (20.0, 2.5, "Expensive"),
        (20.0, 1.5, "Fair value"),
    ],
)
def test_valuation_signal(pe, peg, expected):
    assert valuation_signal(pe, peg) == expected


def test_compute_indicators_short_history_leaves_fields_unavailable():
    ind = compute_indicators("AAPL", _bars([100.0 + i for i in range(10)]))
    assert ind.price == 109.0
    assert ind.ma20 is None
    assert ind.ma50 is None
    assert ind.rsi is None
    assert ind.signal.action == "NEUTRAL"


def test_compute_indicators_steady_uptrend():
    ind = compute_indicators("AAPL", _bars([100.0 + i for i in range(60)]))
    assert ind.ma20 > ind.ma50
    assert ind.rsi == 100.0
    assert ind.volume_ratio == pytest.approx(1.0)
    # trend BUY then RSI>70 flips it
    assert ind.signal.action == "SELL"

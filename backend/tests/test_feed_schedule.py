# Overview: Pytest coverage for the feed schedule table and bag conversion.

import pytest

from poultrydash.feed_schedule import (
    FEED_SCHEDULE,
    GRAMS_PER_BAG,
    PLATEAU_DAY,
    bags_to_grams,
    cumulative_feed_for_day,
    feed_for_day,
    grams_to_bags,
    schedule_rows,
)


class TestFeedForDay:
    def test_table_days(self):
        assert feed_for_day(1) == 16
        assert feed_for_day(5) == 32
        assert feed_for_day(30) == 132
        assert feed_for_day(31) == 140
        assert feed_for_day(PLATEAU_DAY) == 175

    def test_days_past_table_use_last_rate(self):
        assert feed_for_day(35) == feed_for_day(PLATEAU_DAY)
        assert feed_for_day(50) == feed_for_day(PLATEAU_DAY)
        assert feed_for_day(365) == 175

    def test_non_positive_day_is_zero(self):
        assert feed_for_day(0) == 0
        assert feed_for_day(-3) == 0

    def test_schedule_is_read_only(self):
        with pytest.raises(TypeError):
            FEED_SCHEDULE[1] = 0
        assert feed_for_day(1) == 16


class TestCumulativeFeed:
    def test_first_days(self):
        assert cumulative_feed_for_day(1) == 16
        assert cumulative_feed_for_day(5) == 16 + 20 + 24 + 28 + 32

    def test_matches_table_sum(self):
        assert cumulative_feed_for_day(PLATEAU_DAY) == sum(FEED_SCHEDULE.values())
        assert cumulative_feed_for_day(PLATEAU_DAY) == 2850

    def test_plateau_extends_linearly(self):
        assert cumulative_feed_for_day(40) == 2850 + 6 * 175
        assert cumulative_feed_for_day(41) - cumulative_feed_for_day(40) == 175

    def test_monotone_over_cycle(self):
        totals = [cumulative_feed_for_day(day) for day in range(0, 60)]
        assert totals == sorted(totals)

    def test_before_day_one_is_zero(self):
        assert cumulative_feed_for_day(0) == 0
        assert cumulative_feed_for_day(-10) == 0

    def test_schedule_rows(self):
        rows = schedule_rows()
        assert len(rows) == PLATEAU_DAY
        assert rows[0] == {"day": 1, "grams_per_bird": 16, "cumulative_grams_per_bird": 16}
        assert rows[-1]["cumulative_grams_per_bird"] == 2850


class TestBagConversion:
    def test_one_bag_is_fifty_kilos(self):
        assert GRAMS_PER_BAG == 50_000
        assert grams_to_bags(50_000) == 1.0
        assert bags_to_grams(2) == 100_000

    def test_thousand_birds_five_days(self):
        grams = cumulative_feed_for_day(5) * 1000
        assert grams_to_bags(grams) == pytest.approx(2.4)

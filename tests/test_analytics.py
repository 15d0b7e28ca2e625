"""Tests for the journal analytics engine."""

import sys
import os
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from journal.analytics import Analytics, drawdown_series, filter_setups, weekday_index
from builders import make_running, make_skipped, make_executed


class TestEmptyJournal:
    def setup_method(self):
        self.a = Analytics([])

    def test_summary_is_zero(self):
        s = self.a.summary()
        assert s["count"] == 0
        assert s["running_count"] == 0
        assert s["executed_count"] == 0
        assert s["total_pnl"] == 0.0
        assert s["win_rate"] == 0.0
        assert s["avg_score"] == 0.0
        assert s["avg_rr"] == 0.0

    def test_win_rates_are_zero(self):
        w = self.a.win_rates()
        assert w["setup_win_rate"] == 0.0
        assert w["trade_win_rate"] == 0.0
        assert w["decided_count"] == 0

    def test_empty_series(self):
        assert self.a.outcome_distribution() == {"win": 0, "loss": 0, "breakeven": 0}
        assert self.a.outcome_chart_data() == []
        assert self.a.score_series() == []
        assert self.a.cumulative_pnl() == []
        assert self.a.drawdown() == []
        assert drawdown_series([]) == []

    def test_histogram_still_dense(self):
        buckets = self.a.entry_time_histogram()
        assert len(buckets) == 97
        assert all(b["trades"] == 0 for b in buckets)

    def test_daily_activity_still_lists_days(self):
        days = self.a.daily_activity(2024, 4)
        assert len(days) == 30
        assert all(d["count"] == 0 for d in days)

    def test_calculate_all(self):
        result = self.a.calculate_all()
        assert result["summary"]["count"] == 0
        assert result["daily_activity"] == []
        assert len(result["entry_times"]) == 97


class TestSummary:
    def test_counts_and_pnl(self):
        setups = [
            make_executed(100, checked=10, rr_ratio=2.0),
            make_executed(-50, checked=5, rr_ratio=1.0),
            make_executed(200, checked=15, rr_ratio=3.0),
            make_running(checked=0),
            make_skipped("SL", checked=5),
        ]
        s = Analytics(setups).summary()
        assert s["count"] == 5
        assert s["running_count"] == 1
        assert s["skipped_count"] == 1
        assert s["executed_count"] == 3
        assert s["total_pnl"] == 250.0
        assert s["win_rate"] == 66.7
        # Average score covers every setup, not just executed ones
        assert s["avg_score"] == 7.0
        # Average RR covers executed only
        assert s["avg_rr"] == 2.0

    def test_win_rate_all_winners(self):
        setups = [make_executed(10), make_executed(20), make_executed(5)]
        assert Analytics(setups).summary()["win_rate"] == 100.0

    def test_win_rate_no_winners(self):
        setups = [make_executed(-10), make_executed(0), make_running()]
        assert Analytics(setups).summary()["win_rate"] == 0.0

    def test_no_executed_setups(self):
        s = Analytics([make_running(checked=4), make_skipped(checked=6)]).summary()
        assert s["win_rate"] == 0.0
        assert s["avg_rr"] == 0.0
        assert s["avg_score"] == 5.0

    def test_idempotent(self):
        setups = [make_executed(100), make_executed(-40, date="2024-05-02")]
        a = Analytics(setups)
        assert a.calculate_all(year=2024, month=5) == a.calculate_all(year=2024, month=5)


class TestWinRates:
    def test_setup_and_trade_win_rate_fixed_scenario(self):
        setups = [
            make_executed(120),
            make_executed(-60),
            make_skipped("TP"),
            make_skipped("SL"),
        ]
        w = Analytics(setups).win_rates()
        assert w["trade_win_rate"] == 50.0
        assert w["trade_wins"] == 1
        assert w["executed_count"] == 2
        assert w["setup_win_rate"] == 50.0
        assert w["setup_wins"] == 2
        assert w["decided_count"] == 4

    def test_rates_counted_independently(self):
        setups = [make_executed(-10), make_skipped("TP"), make_skipped("TP")]
        w = Analytics(setups).win_rates()
        assert w["trade_win_rate"] == 0.0
        assert w["setup_win_rate"] == 66.7

    def test_running_setups_are_not_decided(self):
        setups = [make_running(), make_running(), make_executed(50)]
        w = Analytics(setups).win_rates()
        assert w["decided_count"] == 1
        assert w["setup_win_rate"] == 100.0

    def test_skipped_without_outcome_is_not_a_win(self):
        w = Analytics([make_skipped("")]).win_rates()
        assert w["decided_count"] == 1
        assert w["setup_win_rate"] == 0.0


class TestOutcomes:
    def test_distribution(self):
        setups = [make_executed(10), make_executed(-5), make_executed(0),
                  make_executed(3), make_running()]
        assert Analytics(setups).outcome_distribution() == {
            "win": 2, "loss": 1, "breakeven": 1,
        }

    def test_all_wins_omits_empty_slices(self):
        a = Analytics([make_executed(10), make_executed(20)])
        assert a.outcome_distribution() == {"win": 2, "loss": 0, "breakeven": 0}
        chart = a.outcome_chart_data()
        assert [c["name"] for c in chart] == ["Win"]
        assert chart[0]["value"] == 2

    def test_score_series_keeps_input_order(self):
        setups = [
            make_running(pair="XAUUSD", checked=12, date="2024-05-03"),
            make_executed(10, pair="EURUSD", checked=3, date="2024-05-01"),
            make_skipped(pair="GBPUSD", checked=8, date="2024-05-02"),
        ]
        series = Analytics(setups).score_series()
        assert series == [
            {"index": 1, "score": 12, "pair": "XAUUSD"},
            {"index": 2, "score": 3, "pair": "EURUSD"},
            {"index": 3, "score": 8, "pair": "GBPUSD"},
        ]


class TestEntryTimeHistogram:
    def test_full_day_has_97_labelled_buckets(self):
        buckets = Analytics([make_running(time="10:30")]).entry_time_histogram()
        assert len(buckets) == 97
        assert buckets[0]["time"] == "00:00"
        assert buckets[1]["time"] == "00:15"
        assert buckets[37]["time"] == "09:15"
        assert buckets[-1]["time"] == "24:00"
        assert buckets[-1]["minute"] == 1440

    def test_range_bucketing_counts_inside_bucket(self):
        setups = [make_running(time="09:07"), make_running(time="09:00"),
                  make_running(time="09:14")]
        buckets = Analytics(setups).entry_time_histogram()
        by_time = {b["time"]: b["trades"] for b in buckets}
        assert by_time["09:00"] == 3
        assert by_time["09:15"] == 0

    def test_exact_bucketing_needs_boundary(self):
        setups = [make_running(time="09:07"), make_running(time="09:15")]
        buckets = Analytics(setups).entry_time_histogram(bucketing="exact")
        by_time = {b["time"]: b["trades"] for b in buckets}
        assert by_time["09:00"] == 0
        assert by_time["09:15"] == 1
        assert sum(b["trades"] for b in buckets) == 1

    def test_setups_without_time_are_excluded(self):
        setups = [make_running(time=""), make_running(time="08:00")]
        buckets = Analytics(setups).entry_time_histogram()
        assert sum(b["trades"] for b in buckets) == 1

    def test_weekday_filter(self):
        # 2024-05-06 is a Monday, 2024-05-07 a Tuesday
        setups = [
            make_running(date="2024-05-06", time="10:00"),
            make_running(date="2024-05-06", time="11:00"),
            make_running(date="2024-05-07", time="10:00"),
        ]
        a = Analytics(setups)
        assert sum(b["trades"] for b in a.entry_time_histogram(day="Mon")) == 2
        assert sum(b["trades"] for b in a.entry_time_histogram(day="tuesday")) == 1
        assert sum(b["trades"] for b in a.entry_time_histogram(day="Sun")) == 0
        assert sum(b["trades"] for b in a.entry_time_histogram(day="all")) == 3

    def test_custom_range(self):
        setups = [make_running(time="09:00"), make_running(time="10:00"),
                  make_running(time="10:01"), make_running(time="08:59")]
        buckets = Analytics(setups).entry_time_histogram(start=540, end=600)
        assert [b["time"] for b in buckets] == ["09:00", "09:15", "09:30", "09:45", "10:00"]
        assert [b["trades"] for b in buckets] == [1, 0, 0, 0, 1]

    def test_malformed_date_is_skipped(self):
        setups = [make_running(date="not-a-date", time="09:00"), make_running(time="09:00")]
        buckets = Analytics(setups).entry_time_histogram()
        assert sum(b["trades"] for b in buckets) == 1

    def test_bad_parameters(self):
        a = Analytics([])
        with pytest.raises(ValueError):
            a.entry_time_histogram(step=0)
        with pytest.raises(ValueError):
            a.entry_time_histogram(start=600, end=500)
        with pytest.raises(ValueError):
            a.entry_time_histogram(day="Funday")
        with pytest.raises(ValueError):
            a.entry_time_histogram(bucketing="nearest")

    def test_weekday_index(self):
        assert weekday_index("Sun") == 0
        assert weekday_index("saturday") == 6
        assert weekday_index(" Wed ") == 3


class TestCumulativePnL:
    def test_sorted_by_date_and_time(self):
        setups = [
            make_executed(30, date="2024-05-03", time="10:00"),
            make_executed(-20, date="2024-05-01", time="15:00"),
            make_executed(50, date="2024-05-01", time="09:00"),
        ]
        curve = Analytics(setups).cumulative_pnl()
        assert [p["pnl"] for p in curve] == [50.0, 30.0, 60.0]
        assert [p["index"] for p in curve] == [1, 2, 3]
        assert [p["date"] for p in curve] == ["2024-05-01", "2024-05-01", "2024-05-03"]

    def test_missing_time_sorts_as_midnight(self):
        setups = [
            make_executed(10, date="2024-05-01", time="08:00"),
            make_executed(-5, date="2024-05-01", time=""),
        ]
        curve = Analytics(setups).cumulative_pnl()
        assert [p["pnl"] for p in curve] == [-5.0, 5.0]

    def test_ties_keep_input_order(self):
        setups = [
            make_executed(100, date="2024-05-01", time="09:00"),
            make_executed(-300, date="2024-05-01", time="09:00"),
            make_executed(40, date="2024-05-01", time="09:00"),
        ]
        curve = Analytics(setups).cumulative_pnl()
        assert [p["pnl"] for p in curve] == [100.0, -200.0, -160.0]

    def test_last_point_is_total(self):
        pnls = [12.5, -3.25, 40.0, -18.0, 7.75]
        setups = [make_executed(p, date=f"2024-05-{10 - i:02d}") for i, p in enumerate(pnls)]
        curve = Analytics(setups).cumulative_pnl()
        assert curve[-1]["pnl"] == pytest.approx(sum(pnls))

    def test_non_negative_pnls_never_decrease(self):
        setups = [make_executed(p, date=f"2024-05-0{i + 1}") for i, p in enumerate([5, 0, 10, 3])]
        values = [p["pnl"] for p in Analytics(setups).cumulative_pnl()]
        assert values == sorted(values)

    def test_only_executed_setups(self):
        setups = [make_executed(10), make_running(), make_skipped("TP")]
        assert len(Analytics(setups).cumulative_pnl()) == 1

    def test_malformed_date_skipped_but_still_counted(self):
        setups = [make_executed(10, date="2024-13-45"), make_executed(20)]
        a = Analytics(setups)
        assert [p["pnl"] for p in a.cumulative_pnl()] == [20.0]
        assert a.summary()["executed_count"] == 2
        assert a.summary()["total_pnl"] == 30.0


class TestDrawdown:
    def _curve(self, values):
        return [{"index": i + 1, "pnl": v, "date": "2024-05-01"} for i, v in enumerate(values)]

    def test_distance_below_peak(self):
        dd = drawdown_series(self._curve([100, 60, 160, 120]))
        assert [p["drawdown"] for p in dd] == [0.0, -40.0, 0.0, -40.0]

    def test_negative_start(self):
        dd = drawdown_series(self._curve([-50, -80, -20]))
        assert [p["drawdown"] for p in dd] == [0.0, -30.0, 0.0]

    def test_never_positive_and_zero_at_new_peaks(self):
        values = [10, 25, 5, 30, 30, -10, 45]
        dd = drawdown_series(self._curve(values))
        running_max = float("-inf")
        for value, point in zip(values, dd):
            assert point["drawdown"] <= 0
            if value >= running_max:
                assert point["drawdown"] == 0
            running_max = max(running_max, value)

    def test_from_setups(self):
        setups = [
            make_executed(100, date="2024-05-01"),
            make_executed(-150, date="2024-05-02"),
            make_executed(80, date="2024-05-03"),
        ]
        dd = Analytics(setups).drawdown()
        assert [p["drawdown"] for p in dd] == [0.0, -150.0, -70.0]
        assert [p["date"] for p in dd] == ["2024-05-01", "2024-05-02", "2024-05-03"]


class TestDailyActivity:
    def test_thirty_day_month(self):
        setups = [
            make_running(date="2024-04-01"),
            make_running(date="2024-04-01"),
            make_executed(10, date="2024-04-15"),
            make_skipped(date="2024-04-30"),
            make_running(date="2024-05-01"),
            make_running(date="garbage"),
        ]
        days = Analytics(setups).daily_activity(2024, 4)
        assert len(days) == 30
        assert all(d["count"] >= 0 for d in days)
        assert sum(d["count"] for d in days) == 4
        assert days[0]["count"] == 2
        assert days[14]["count"] == 1
        assert days[29]["count"] == 1

    def test_grid_alignment(self):
        # April 1, 2024 was a Monday: one blank Sunday cell before it
        days = Analytics([]).daily_activity(2024, 4)
        assert days[0] == {"date": "2024-04-01", "day": 1, "weekday": 1, "week": 0, "count": 0}
        assert days[5]["weekday"] == 6
        assert days[6]["weekday"] == 0
        assert days[6]["week"] == 1
        assert days[-1]["week"] == 4

    def test_leap_february(self):
        assert len(Analytics([]).daily_activity(2024, 2)) == 29
        assert len(Analytics([]).daily_activity(2023, 2)) == 28

    def test_invalid_month(self):
        with pytest.raises(ValueError):
            Analytics([]).daily_activity(2024, 13)

    def test_calculate_all_defaults_to_latest_month(self):
        setups = [make_running(date="2024-03-10"), make_running(date="2024-06-02")]
        result = Analytics(setups).calculate_all()
        assert len(result["daily_activity"]) == 30
        assert result["daily_activity"][0]["date"] == "2024-06-01"


class TestFilterSetups:
    def test_by_pair_and_status(self):
        setups = [
            make_running(pair="EURUSD"),
            make_executed(10, pair="XAUUSD"),
            make_running(pair="XAUUSD"),
        ]
        assert filter_setups(setups, pair="XAUUSD") == setups[1:]
        assert filter_setups(setups, status="Running") == [setups[0], setups[2]]
        assert filter_setups(setups, pair="XAUUSD", status="Running") == [setups[2]]
        assert filter_setups(setups, pair="All", status="All") == setups
        assert filter_setups(setups) == setups

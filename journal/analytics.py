"""Derived statistics over a trader's setups.

Everything here is computed from scratch on each call from the snapshot
passed in: counts and win rates, outcome split, score consistency, entry-time
histogram, cumulative PnL with drawdown, and a monthly activity calendar.
All outputs are plain numbers, strings, lists and dicts.

Records with a date or time that doesn't parse are left out of the
time-based views and still counted everywhere else.
"""

import calendar
import logging
from collections import Counter
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from journal.models import (
    Setup, ExecutedSetup, SkippedSetup,
    STATUS_RUNNING, STATUS_SKIPPED, STATUS_EXECUTED,
)
from journal.utils import minutes_to_label

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 1440
DEFAULT_BUCKET_MINUTES = 15

# Sunday-first, matching a 7-column Sun..Sat calendar grid
DAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
_FULL_DAY_NAMES = ("sunday", "monday", "tuesday", "wednesday",
                   "thursday", "friday", "saturday")

BUCKETING_RANGE = "range"
BUCKETING_EXACT = "exact"

OUTCOME_COLORS = {
    "Win": "#10b981",
    "Loss": "#ef4444",
    "Break Even": "#94a3b8",
}


def filter_setups(setups: Sequence[Setup], pair: Optional[str] = None,
                  status: Optional[str] = None) -> list:
    """Setups matching a pair and/or status, in their original order.

    None or "All" disables that filter.
    """
    return [
        s for s in setups
        if (pair in (None, "All") or s.pair == pair)
        and (status in (None, "All") or s.status == status)
    ]


def weekday_index(day: str) -> int:
    """Sunday-first weekday index (0-6) for a day name like "Mon" or "monday"."""
    key = day.strip().lower()
    for i, full in enumerate(_FULL_DAY_NAMES):
        if key == full or key == full[:3]:
            return i
    raise ValueError(f"Unknown weekday: {day!r}. Use one of {DAY_NAMES}")


def sunday_first_weekday(d) -> int:
    """date.weekday() is Monday=0; the calendar grid is Sunday=0."""
    return (d.weekday() + 1) % 7


def drawdown_series(cumulative: Sequence[dict]) -> list:
    """Distance below the running peak for each point of a cumulative PnL series.

    Each value is cumulative - max(cumulative[0..i]), so it is 0.0 on a new
    peak and negative below one.
    """
    if len(cumulative) == 0:
        return []
    values = np.array([p["pnl"] for p in cumulative], dtype=float)
    peak = np.maximum.accumulate(values)
    drawdown = values - peak
    return [
        {"index": p["index"], "drawdown": float(dd), "date": p["date"]}
        for p, dd in zip(cumulative, drawdown)
    ]


def _pct(part: int, whole: int) -> float:
    if whole == 0:
        return 0.0
    return round(part / whole * 100, 1)


class Analytics:
    """Compute journal statistics from a snapshot of setups."""

    def __init__(self, setups: Sequence[Setup]):
        """
        Args:
            setups: The user's setups in fetch order (freshest first)
        """
        self.setups = tuple(setups)
        self._executed = tuple(s for s in self.setups if isinstance(s, ExecutedSetup))
        self._pnls = np.array([s.pnl for s in self._executed], dtype=float)

    def calculate_all(self, day: Optional[str] = None,
                      start: int = 0, end: int = MINUTES_PER_DAY,
                      step: int = DEFAULT_BUCKET_MINUTES,
                      bucketing: str = BUCKETING_RANGE,
                      year: Optional[int] = None,
                      month: Optional[int] = None) -> dict:
        """Every view in one dictionary.

        When year/month are not given, the activity map covers the month of
        the latest dated setup (empty when no setup has a valid date).
        """
        if year is None or month is None:
            latest = self._latest_month()
            if latest is not None:
                year, month = latest

        cumulative = self.cumulative_pnl()
        return {
            "summary": self.summary(),
            "win_rates": self.win_rates(),
            "outcome_distribution": self.outcome_distribution(),
            "outcome_chart": self.outcome_chart_data(),
            "score_series": self.score_series(),
            "entry_times": self.entry_time_histogram(
                day=day, start=start, end=end, step=step, bucketing=bucketing,
            ),
            "cumulative_pnl": cumulative,
            "drawdown": drawdown_series(cumulative),
            "daily_activity": (
                self.daily_activity(year, month) if year is not None else []
            ),
        }

    # ── Dashboard ───────────────────────────────────────────────

    def summary(self) -> dict:
        """Headline counts, total PnL, trade win rate, average score and RR."""
        executed = len(self._executed)
        wins = int((self._pnls > 0).sum())

        if self.setups:
            avg_score = round(float(np.mean([s.score for s in self.setups])), 1)
        else:
            avg_score = 0.0

        if executed:
            avg_rr = round(float(np.mean([s.rr_ratio for s in self._executed])), 2)
            total_pnl = float(self._pnls.sum())
        else:
            avg_rr = 0.0
            total_pnl = 0.0

        return {
            "count": len(self.setups),
            "running_count": sum(1 for s in self.setups if s.status == STATUS_RUNNING),
            "skipped_count": sum(1 for s in self.setups if s.status == STATUS_SKIPPED),
            "executed_count": executed,
            "total_pnl": total_pnl,
            "win_rate": _pct(wins, executed),
            "avg_score": avg_score,
            "avg_rr": avg_rr,
        }

    # ── Win rates ───────────────────────────────────────────────

    def win_rates(self) -> dict:
        """Setup win rate (decisions incl. skipped) and trade win rate (executed only).

        A decided setup wins if it was executed at a profit, or skipped and
        would have hit TP. The two rates are counted separately.
        """
        decided = [s for s in self.setups if s.status in (STATUS_EXECUTED, STATUS_SKIPPED)]
        setup_wins = 0
        for s in decided:
            if isinstance(s, ExecutedSetup) and s.is_winner:
                setup_wins += 1
            elif isinstance(s, SkippedSetup) and s.setup_outcome == "TP":
                setup_wins += 1

        trade_wins = sum(1 for s in self._executed if s.is_winner)

        return {
            "setup_win_rate": _pct(setup_wins, len(decided)),
            "setup_wins": setup_wins,
            "decided_count": len(decided),
            "trade_win_rate": _pct(trade_wins, len(self._executed)),
            "trade_wins": trade_wins,
            "executed_count": len(self._executed),
        }

    def outcome_distribution(self) -> dict:
        """Executed setups split into wins, losses and break-evens."""
        return {
            "win": int((self._pnls > 0).sum()),
            "loss": int((self._pnls < 0).sum()),
            "breakeven": int((self._pnls == 0).sum()),
        }

    def outcome_chart_data(self) -> list:
        """Pie-chart slices for the outcome split, leaving out empty slices."""
        dist = self.outcome_distribution()
        slices = [
            ("Win", dist["win"]),
            ("Loss", dist["loss"]),
            ("Break Even", dist["breakeven"]),
        ]
        return [
            {"name": name, "value": value, "color": OUTCOME_COLORS[name]}
            for name, value in slices if value > 0
        ]

    def score_series(self) -> list:
        """Checklist score per setup, in input order (1-based index)."""
        return [
            {"index": i + 1, "score": s.score, "pair": s.pair}
            for i, s in enumerate(self.setups)
        ]

    # ── Time of day ─────────────────────────────────────────────

    def entry_time_histogram(self, day: Optional[str] = None,
                             start: int = 0, end: int = MINUTES_PER_DAY,
                             step: int = DEFAULT_BUCKET_MINUTES,
                             bucketing: str = BUCKETING_RANGE) -> list:
        """Number of entries per time-of-day bucket.

        Buckets start at start, start+step, ... up to and including end, and
        every bucket is returned even when empty.

        Args:
            day: Only count setups entered on this weekday ("Mon", "Friday", ...)
            start: First bucket, minutes since midnight
            end: Last bucket start, minutes since midnight (inclusive)
            step: Bucket width in minutes
            bucketing: "range" counts an entry in the bucket containing it;
                "exact" only counts entries landing exactly on a bucket start

        Returns:
            List of {"time": "HH:MM", "minute": int, "trades": int}
        """
        if step <= 0:
            raise ValueError(f"step must be positive, got {step}")
        if not 0 <= start <= end <= MINUTES_PER_DAY:
            raise ValueError(
                f"Need 0 <= start <= end <= {MINUTES_PER_DAY}, got start={start} end={end}"
            )
        if bucketing not in (BUCKETING_RANGE, BUCKETING_EXACT):
            raise ValueError(f"Unknown bucketing mode: {bucketing!r}")
        wanted_day = weekday_index(day) if day not in (None, "all", "All") else None

        minutes = []
        for s in self.setups:
            minute = s.entry_minute
            if minute is None:
                continue
            entry_date = s.entry_date
            if entry_date is None:
                logger.debug(f"Skipping setup {s.id}: unparseable date {s.date!r}")
                continue
            if wanted_day is not None and sunday_first_weekday(entry_date) != wanted_day:
                continue
            if start <= minute <= end:
                minutes.append(minute)

        bucket_starts = list(range(start, end + 1, step))
        offsets = np.array(minutes, dtype=int) - start
        if bucketing == BUCKETING_EXACT:
            offsets = offsets[offsets % step == 0]
        counts = np.bincount(offsets // step, minlength=len(bucket_starts))

        return [
            {"time": minutes_to_label(m), "minute": m, "trades": int(counts[i])}
            for i, m in enumerate(bucket_starts)
        ]

    # ── PnL curve ───────────────────────────────────────────────

    def cumulative_pnl(self) -> list:
        """Running PnL total over executed setups in entry order.

        Setups are ordered by (date, time), a missing time counting as 00:00;
        ties keep their input order.

        Returns:
            List of {"index": int, "pnl": float, "date": str}
        """
        rows = []
        for s in self._executed:
            ts = s.entry_timestamp
            if ts is None:
                logger.debug(f"Skipping setup {s.id} from PnL curve: bad date {s.date!r}")
                continue
            rows.append({"timestamp": ts, "pnl": s.pnl, "date": s.date})
        if not rows:
            return []

        df = pd.DataFrame(rows).sort_values("timestamp", kind="stable")
        running = df["pnl"].cumsum()
        return [
            {"index": i + 1, "pnl": float(total), "date": date}
            for i, (total, date) in enumerate(zip(running, df["date"]))
        ]

    def drawdown(self) -> list:
        """Drawdown below the running peak of cumulative_pnl()."""
        return drawdown_series(self.cumulative_pnl())

    # ── Calendar ────────────────────────────────────────────────

    def daily_activity(self, year: int, month: int) -> list:
        """Setups logged per calendar day of a month.

        Every day of the month is present. weekday is Sunday=0 and week is the
        row in a Sunday-first grid, so the first entry's weekday is the number
        of blank cells before day 1.

        Returns:
            List of {"date", "day", "weekday", "week", "count"}
        """
        if not 1 <= month <= 12:
            raise ValueError(f"month must be 1-12, got {month}")

        counts = Counter()
        for s in self.setups:
            d = s.entry_date
            if d is None:
                logger.debug(f"Skipping setup {s.id} from activity map: bad date {s.date!r}")
                continue
            if d.year == year and d.month == month:
                counts[d.day] += 1

        first_weekday, days_in_month = calendar.monthrange(year, month)
        offset = (first_weekday + 1) % 7
        return [
            {
                "date": f"{year:04d}-{month:02d}-{day:02d}",
                "day": day,
                "weekday": (offset + day - 1) % 7,
                "week": (offset + day - 1) // 7,
                "count": counts[day],
            }
            for day in range(1, days_in_month + 1)
        ]

    def _latest_month(self) -> Optional[tuple]:
        dates = [d for d in (s.entry_date for s in self.setups) if d is not None]
        if not dates:
            return None
        latest = max(dates)
        return latest.year, latest.month

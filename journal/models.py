"""Setup records for the trading journal.

A setup is one of three variants, picked by its status:

- RunningSetup: an open position (or a plan being tracked)
- SkippedSetup: a setup deliberately not taken, with its hypothetical outcome
- ExecutedSetup: a closed position with an outcome and realized PnL

Records serialize to the camelCase document layout used by storage and by
backup files (see ``setup_to_dict`` / ``setup_from_dict``).
"""

import datetime as dt
import logging
import math
from dataclasses import dataclass, field
from typing import ClassVar, Optional, Union

from journal.errors import SetupValidationError

logger = logging.getLogger(__name__)

STATUS_RUNNING = "Running"
STATUS_SKIPPED = "Skipped"
STATUS_EXECUTED = "Executed"
STATUSES = (STATUS_RUNNING, STATUS_SKIPPED, STATUS_EXECUTED)

DIRECTIONS = ("Buy", "Sell")
CLOSE_OUTCOMES = ("TP", "SL", "SL+", "Cutloss", "Manual")
SKIP_OUTCOMES = ("TP", "SL", "")

DEFAULT_PAIRS = ("EURUSD", "GBPUSD", "XAUUSD", "BTCUSD", "USDJPY", "AUDUSD")

CHECKLIST_GROUPS = ("htf", "ltf", "risk")
CHECKLIST_SIZE = 5
CHECKLIST_ITEMS = {
    "htf": (
        "Clear HTF trend (higher highs / higher lows)",
        "Price at a valid supply/demand zone",
        "Market structure still intact",
        "Confluence with fibonacci / EMA",
        "Volume supports the bias",
    ),
    "ltf": (
        "Break of structure (BOS) visible",
        "Rejection / engulfing candle printed",
        "Price action confirms the entry",
        "Risk/Reward at least 1:2",
        "Entry in the optimal zone",
    ),
    "risk": (
        "Stop loss at a logical level",
        "Position size risks 1-2%",
        "Realistic take profit",
        "No conflicting news",
        "Calm and stable at entry",
    ),
}
CHECKLIST_TITLES = {
    "htf": "HTF (H4) - Main Bias",
    "ltf": "LTF (M15/M5) - Entry Confirmation",
    "risk": "Risk & Execution",
}
MAX_SCORE = CHECKLIST_SIZE * len(CHECKLIST_GROUPS)


def parse_date(value: str) -> Optional[dt.date]:
    """Parse an ISO ``YYYY-MM-DD`` entry date. Returns None if unparseable."""
    if not value:
        return None
    try:
        return dt.datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except (ValueError, AttributeError):
        return None


def parse_time(value: str) -> Optional[dt.time]:
    """Parse an ``HH:MM`` (or ``HH:MM:SS``) entry time. Returns None if blank or bad."""
    if not value:
        return None
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return dt.datetime.strptime(value.strip(), fmt).time()
        except (ValueError, AttributeError):
            continue
    return None


@dataclass(frozen=True)
class Checklist:
    """Quality-gate answers: three groups of five yes/no criteria."""
    htf: tuple = (False,) * CHECKLIST_SIZE
    ltf: tuple = (False,) * CHECKLIST_SIZE
    risk: tuple = (False,) * CHECKLIST_SIZE

    def __post_init__(self):
        for group in CHECKLIST_GROUPS:
            answers = getattr(self, group)
            if isinstance(answers, (str, bytes)) or not hasattr(answers, "__iter__"):
                raise SetupValidationError("expected a list of booleans", f"checklist.{group}")
            answers = tuple(answers)
            if len(answers) != CHECKLIST_SIZE:
                raise SetupValidationError(
                    f"expected {CHECKLIST_SIZE} answers, got {len(answers)}",
                    f"checklist.{group}",
                )
            if not all(isinstance(a, bool) for a in answers):
                raise SetupValidationError("answers must be true/false", f"checklist.{group}")
            object.__setattr__(self, group, answers)

    @property
    def score(self) -> int:
        return sum(self.htf) + sum(self.ltf) + sum(self.risk)

    def to_dict(self) -> dict:
        return {group: list(getattr(self, group)) for group in CHECKLIST_GROUPS}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "Checklist":
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise SetupValidationError("expected an object with htf/ltf/risk", "checklist")
        return cls(**{g: data.get(g, (False,) * CHECKLIST_SIZE) for g in CHECKLIST_GROUPS})


@dataclass(frozen=True, kw_only=True)
class BaseSetup:
    """Fields shared by every setup variant."""
    status: ClassVar[str] = ""

    name: str
    pair: str
    direction: str
    date: str
    time: str = ""
    sl_usd: float = 0.0
    tp_usd: float = 0.0
    sl_amount: float = 0.0
    tp_amount: float = 0.0
    rr_ratio: float = 0.0
    checklist: Checklist = field(default_factory=Checklist)
    notes: str = ""
    screenshot_urls: tuple = ()
    id: Optional[str] = None
    created_at: Optional[str] = None

    def __post_init__(self):
        if self.direction not in DIRECTIONS:
            raise SetupValidationError(f"must be one of {DIRECTIONS}", "direction")
        for name in ("sl_usd", "tp_usd", "sl_amount", "tp_amount", "rr_ratio"):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise SetupValidationError("must be a finite number", name)
            if value < 0:
                raise SetupValidationError("must not be negative", name)
        object.__setattr__(self, "screenshot_urls", tuple(self.screenshot_urls))

    @property
    def score(self) -> int:
        """Checklist score, 0-15. Always derived from the checklist."""
        return self.checklist.score

    @property
    def effective_risk_amount(self) -> float:
        """Money at stake on the stop: slAmount when set, else slUsd."""
        return self.sl_amount or self.sl_usd

    @property
    def effective_reward_amount(self) -> float:
        """Money targeted at take profit: tpAmount when set, else tpUsd."""
        return self.tp_amount or self.tp_usd

    @property
    def entry_date(self) -> Optional[dt.date]:
        return parse_date(self.date)

    @property
    def entry_time(self) -> Optional[dt.time]:
        return parse_time(self.time)

    @property
    def entry_minute(self) -> Optional[int]:
        """Minutes since midnight of the entry time, or None without a time."""
        t = self.entry_time
        if t is None:
            return None
        return t.hour * 60 + t.minute

    @property
    def entry_timestamp(self) -> Optional[dt.datetime]:
        """Entry date and time combined; a missing time counts as 00:00."""
        d = self.entry_date
        if d is None:
            return None
        return dt.datetime.combine(d, self.entry_time or dt.time(0, 0))


@dataclass(frozen=True, kw_only=True)
class RunningSetup(BaseSetup):
    """An open setup waiting to be closed."""
    status: ClassVar[str] = STATUS_RUNNING


@dataclass(frozen=True, kw_only=True)
class SkippedSetup(BaseSetup):
    """A setup that was not taken. setup_outcome records what it would have hit."""
    status: ClassVar[str] = STATUS_SKIPPED
    setup_outcome: str = ""

    def __post_init__(self):
        super().__post_init__()
        if self.setup_outcome not in SKIP_OUTCOMES:
            raise SetupValidationError(f"must be one of {SKIP_OUTCOMES}", "setupOutcome")


@dataclass(frozen=True, kw_only=True)
class ExecutedSetup(BaseSetup):
    """A closed position with its exit outcome and realized PnL."""
    status: ClassVar[str] = STATUS_EXECUTED
    outcome: str
    pnl: float

    def __post_init__(self):
        super().__post_init__()
        if self.outcome not in CLOSE_OUTCOMES:
            raise SetupValidationError(f"must be one of {CLOSE_OUTCOMES}", "outcome")
        if not math.isfinite(self.pnl):
            raise SetupValidationError("must be a finite number", "pnl")

    @property
    def is_winner(self) -> bool:
        return self.pnl > 0


Setup = Union[RunningSetup, SkippedSetup, ExecutedSetup]

_VARIANTS = {
    STATUS_RUNNING: RunningSetup,
    STATUS_SKIPPED: SkippedSetup,
    STATUS_EXECUTED: ExecutedSetup,
}

# camelCase document key -> attribute name
_FIELD_MAP = {
    "name": "name",
    "pair": "pair",
    "direction": "direction",
    "date": "date",
    "time": "time",
    "slUsd": "sl_usd",
    "tpUsd": "tp_usd",
    "slAmount": "sl_amount",
    "tpAmount": "tp_amount",
    "rrRatio": "rr_ratio",
    "notes": "notes",
}
_NUMERIC_KEYS = ("slUsd", "tpUsd", "slAmount", "tpAmount", "rrRatio")


def setup_to_dict(setup: Setup) -> dict:
    """Serialize a setup to its document form (all fields, camelCase keys)."""
    return {
        "id": setup.id,
        "name": setup.name,
        "pair": setup.pair,
        "direction": setup.direction,
        "date": setup.date,
        "time": setup.time,
        "status": setup.status,
        "slUsd": setup.sl_usd,
        "tpUsd": setup.tp_usd,
        "slAmount": setup.sl_amount,
        "tpAmount": setup.tp_amount,
        "outcome": setup.outcome if isinstance(setup, ExecutedSetup) else "",
        "pnl": setup.pnl if isinstance(setup, ExecutedSetup) else 0.0,
        "rrRatio": setup.rr_ratio,
        "setupOutcome": setup.setup_outcome if isinstance(setup, SkippedSetup) else "",
        "checklist": setup.checklist.to_dict(),
        "score": setup.score,
        "notes": setup.notes,
        "screenshotUrls": list(setup.screenshot_urls),
        "createdAt": setup.created_at,
    }


def setup_from_dict(data: dict) -> Setup:
    """Build the right setup variant from a document.

    Raises:
        SetupValidationError: if the document is missing fields or has bad values
    """
    if not isinstance(data, dict):
        raise SetupValidationError("expected an object")

    status = data.get("status")
    variant = _VARIANTS.get(status) if isinstance(status, str) else None
    if variant is None:
        raise SetupValidationError(f"must be one of {STATUSES}", "status")

    kwargs = {}
    for key, attr in _FIELD_MAP.items():
        if key not in data or data[key] is None:
            continue
        kwargs[attr] = data[key]
    for key in ("name", "pair", "direction", "date"):
        if key not in kwargs:
            raise SetupValidationError("missing", key)
    for key, attr in _FIELD_MAP.items():
        if key not in _NUMERIC_KEYS and attr in kwargs and not isinstance(kwargs[attr], str):
            raise SetupValidationError("expected text", key)
    for key in _NUMERIC_KEYS:
        if key in data and data[key] is not None:
            kwargs[_FIELD_MAP[key]] = _to_float(data[key], key)

    kwargs["checklist"] = Checklist.from_dict(data.get("checklist"))
    urls = data.get("screenshotUrls") or []
    if not isinstance(urls, list) or not all(isinstance(u, str) for u in urls):
        raise SetupValidationError("expected a list of URLs", "screenshotUrls")
    kwargs["screenshot_urls"] = tuple(urls)
    if data.get("id") is not None:
        kwargs["id"] = str(data["id"])
    if data.get("createdAt") is not None:
        kwargs["created_at"] = str(data["createdAt"])

    if variant is SkippedSetup:
        kwargs["setup_outcome"] = data.get("setupOutcome") or ""
    elif variant is ExecutedSetup:
        if data.get("pnl") is None:
            raise SetupValidationError("missing", "pnl")
        kwargs["outcome"] = data.get("outcome") or ""
        kwargs["pnl"] = _to_float(data["pnl"], "pnl")

    setup = variant(**kwargs)

    stored_score = data.get("score")
    if stored_score is not None and stored_score != setup.score:
        logger.warning(
            f"Setup {setup.id}: stored score {stored_score} does not match "
            f"checklist ({setup.score}); using checklist"
        )
    return setup


def _to_float(value, key: str) -> float:
    if isinstance(value, bool):
        raise SetupValidationError("expected a number", key)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise SetupValidationError("expected a number", key)
    if not math.isfinite(number):
        raise SetupValidationError("expected a finite number", key)
    return number

"""Command-line interface for the trading journal.

Usage:
    python -m runner.cli add --pair EURUSD --direction Buy --sl-usd 20 --tp-usd 60 --htf 1,2,3
    python -m runner.cli close 12 --outcome TP
    python -m runner.cli list [--pair XAUUSD] [--status Running]
    python -m runner.cli show 12
    python -m runner.cli delete 12
    python -m runner.cli stats
    python -m runner.cli analytics [--day Mon] [--start 420 --end 720] [--month 2024-05]
    python -m runner.cli report [--output report.html] [--csv] [--png chart.png]
    python -m runner.cli export [--output backup.json]
    python -m runner.cli import backup.json
"""

import argparse
import sys
from datetime import datetime
from pathlib import Path

# Ensure project root is on path
project_root = str(Path(__file__).parent.parent)
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from dotenv import load_dotenv

from journal.config.settings import DEFAULT_CONFIG_PATH
from journal.errors import JournalError, SetupNotFoundError, SetupValidationError
from journal.models import CHECKLIST_SIZE, CLOSE_OUTCOMES, MAX_SCORE, STATUSES, Checklist

DEFAULT_CONFIG = DEFAULT_CONFIG_PATH


def load_env():
    """Load .env file if it exists."""
    env_file = Path(project_root) / ".env"
    if env_file.exists():
        load_dotenv(env_file)


def get_config(args):
    """Load config from CLI args."""
    from journal.config.settings import JournalConfig

    config_path = getattr(args, "config", None) or DEFAULT_CONFIG
    config = JournalConfig.load(config_path)

    if getattr(args, "user", None):
        config.user_id = args.user
    return config


def open_store(config):
    from journal.storage.database import SetupStore

    store = SetupStore(db_path=config.db_path)
    store.connect()
    return store


def parse_checked_items(value: str) -> tuple:
    """Turn "1,3,5" (1-based satisfied items) into five booleans."""
    answers = [False] * CHECKLIST_SIZE
    if not value:
        return tuple(answers)
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        if not part.isdigit() or not 1 <= int(part) <= CHECKLIST_SIZE:
            raise SetupValidationError(
                f"checklist items are numbered 1-{CHECKLIST_SIZE}, got '{part}'", "checklist"
            )
        answers[int(part) - 1] = True
    return tuple(answers)


def parse_month(value: str) -> tuple:
    """Parse YYYY-MM into (year, month)."""
    try:
        parsed = datetime.strptime(value, "%Y-%m")
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM, got '{value}'")
    return parsed.year, parsed.month


def cmd_add(args):
    """Log a new Running or Skipped setup."""
    from journal.lifecycle import new_setup

    config = get_config(args)
    now = datetime.now()
    checklist = Checklist(
        htf=parse_checked_items(args.htf),
        ltf=parse_checked_items(args.ltf),
        risk=parse_checked_items(args.risk),
    )
    setup = new_setup(
        pair=args.pair,
        direction=args.direction,
        date=args.date or now.strftime("%Y-%m-%d"),
        time=args.time if args.time is not None else now.strftime("%H:%M"),
        status=args.status,
        sl_usd=args.sl_usd,
        tp_usd=args.tp_usd,
        sl_amount=args.sl_amount,
        tp_amount=args.tp_amount,
        setup_outcome=args.setup_outcome,
        checklist=checklist,
        notes=args.notes,
        name=args.name,
        pairs=config.pairs,
    )

    store = open_store(config)
    try:
        setup_id = store.create(config.user_id, setup)
    finally:
        store.close()

    print(f"\n  Saved setup {setup_id}: {setup.name}")
    print(f"  Status {setup.status} | Score {setup.score}/{MAX_SCORE} | RR 1:{setup.rr_ratio:.2f}\n")


def cmd_close(args):
    """Close a running setup with an outcome."""
    from journal.utils import format_signed_currency

    config = get_config(args)
    store = open_store(config)
    try:
        closed = store.close_position(config.user_id, args.id, args.outcome, args.pnl)
    finally:
        store.close()

    print(f"\n  Closed {closed.pair} {closed.direction} ({args.outcome}): "
          f"{format_signed_currency(closed.pnl)}\n")


def cmd_list(args):
    """Show setups, freshest first."""
    from journal.analytics import filter_setups
    from journal.models import ExecutedSetup
    from journal.utils import format_signed_currency

    config = get_config(args)
    store = open_store(config)
    try:
        setups = store.fetch_all(config.user_id)
    finally:
        store.close()

    setups = filter_setups(setups, pair=args.pair, status=args.status)
    if not setups:
        print("\n  No setups found.\n")
        return

    print(f"\n  Setups ({len(setups)})")
    print(f"  {'=' * 84}")
    print(f"  {'ID':<5} {'Entry':<17} {'Pair':<8} {'Dir':<5} {'Status':<9} "
          f"{'Score':>6} {'RR':>7} {'PnL':>12}  {'Outcome'}")
    print(f"  {'-' * 84}")
    for s in setups:
        if isinstance(s, ExecutedSetup):
            pnl_str = format_signed_currency(s.pnl)
            outcome = s.outcome
        else:
            pnl_str = "-"
            outcome = getattr(s, "setup_outcome", "")
        entry = f"{s.date} {s.time}".strip()
        print(f"  {s.id:<5} {entry:<17} {s.pair:<8} {s.direction:<5} {s.status:<9} "
              f"{s.score:>4}/{MAX_SCORE} {s.rr_ratio:>7.2f} {pnl_str:>12}  {outcome}")
    print()


def cmd_show(args):
    """Show one setup in full, checklist included."""
    from journal.models import CHECKLIST_GROUPS, CHECKLIST_ITEMS, CHECKLIST_TITLES, ExecutedSetup

    config = get_config(args)
    store = open_store(config)
    try:
        s = store.get(config.user_id, args.id)
    finally:
        store.close()

    print(f"\n  {s.name}  [{s.status}]")
    print(f"  {'=' * 60}")
    print(f"  {s.pair} {s.direction} on {s.date} {s.time}")
    print(f"  SL ${s.sl_usd:,.2f} / TP ${s.tp_usd:,.2f}  "
          f"(at stake ${s.effective_risk_amount:,.2f} / ${s.effective_reward_amount:,.2f})")
    print(f"  RR 1:{s.rr_ratio:.2f}  Score {s.score}/{MAX_SCORE}")
    if isinstance(s, ExecutedSetup):
        print(f"  Outcome {s.outcome}  PnL ${s.pnl:,.2f}")
    elif getattr(s, "setup_outcome", ""):
        print(f"  Would have hit {s.setup_outcome}")

    for group in CHECKLIST_GROUPS:
        print(f"\n  {CHECKLIST_TITLES[group]}")
        for label, checked in zip(CHECKLIST_ITEMS[group], getattr(s.checklist, group)):
            print(f"    [{'x' if checked else ' '}] {label}")

    if s.notes:
        print(f"\n  Notes: {s.notes}")
    print()


def cmd_delete(args):
    config = get_config(args)
    store = open_store(config)
    try:
        deleted = store.delete(config.user_id, args.id)
    finally:
        store.close()

    if not deleted:
        raise SetupNotFoundError(config.user_id, args.id)
    print(f"\n  Deleted setup {args.id}\n")


def cmd_stats(args):
    """Show the dashboard summary."""
    from runner.report_generator import ReportGenerator

    config = get_config(args)
    store = open_store(config)
    try:
        setups = store.fetch_all(config.user_id)
    finally:
        store.close()

    ReportGenerator(setups).print_console_summary()


def cmd_analytics(args):
    """Print the analytics views as tables."""
    from journal.analytics import Analytics

    config = get_config(args)
    store = open_store(config)
    try:
        setups = store.fetch_all(config.user_id)
    finally:
        store.close()

    a = config.analytics
    year, month = args.month or (datetime.now().year, datetime.now().month)
    analytics = Analytics(setups)
    views = analytics.calculate_all(
        day=args.day,
        start=args.start if args.start is not None else a.histogram_start,
        end=args.end if args.end is not None else a.histogram_end,
        step=args.step or a.histogram_step,
        bucketing=args.bucketing or a.histogram_bucketing,
        year=year, month=month,
    )

    w = views["win_rates"]
    print(f"\n  Setup win rate: {w['setup_win_rate']:.1f}% "
          f"({w['setup_wins']}/{w['decided_count']} decided)")
    print(f"  Trade win rate: {w['trade_win_rate']:.1f}% "
          f"({w['trade_wins']}/{w['executed_count']} executed)")

    d = views["outcome_distribution"]
    print(f"  Outcomes: {d['win']} win / {d['loss']} loss / {d['breakeven']} break even")

    busy = [b for b in views["entry_times"] if b["trades"] > 0]
    day_label = args.day or "all days"
    print(f"\n  Entry times ({day_label})")
    if busy:
        for b in busy:
            print(f"    {b['time']}  {'#' * b['trades']} {b['trades']}")
    else:
        print("    no entries in range")

    curve = views["cumulative_pnl"]
    if curve:
        max_dd = min(p["drawdown"] for p in views["drawdown"])
        print(f"\n  Cumulative PnL: ${curve[-1]['pnl']:,.2f} over {len(curve)} trades "
              f"(max drawdown ${max_dd:,.2f})")

    active = [day for day in views["daily_activity"] if day["count"] > 0]
    print(f"\n  Activity {year:04d}-{month:02d}: "
          f"{sum(day['count'] for day in active)} setups on {len(active)} days\n")


def cmd_report(args):
    """Generate an HTML analytics report."""
    from runner.report_generator import ReportGenerator

    config = get_config(args)
    store = open_store(config)
    try:
        setups = store.fetch_all(config.user_id)
    finally:
        store.close()

    a = config.analytics
    rg = ReportGenerator(
        setups, start=a.histogram_start, end=a.histogram_end,
        step=a.histogram_step, bucketing=a.histogram_bucketing,
    )
    output = args.output
    if output is None and config.reports_dir:
        name = datetime.now().strftime("trading_journal_%Y%m%d_%H%M%S.html")
        output = str(Path(config.reports_dir) / name)
    path = rg.generate_html_report(output)
    print(f"Report saved to: {path}")

    if args.csv:
        path = rg.export_setup_log()
        print(f"Setup log saved to: {path}")

    if args.png:
        rg.plot_cumulative_pnl(save_path=args.png)
        print(f"Chart saved to: {args.png}")


def cmd_export(args):
    """Write a JSON backup of every setup."""
    from export.backup_exporter import BackupExporter

    config = get_config(args)
    store = open_store(config)
    try:
        setups = store.fetch_all(config.user_id)
    finally:
        store.close()

    path = BackupExporter(setups).export(args.output or config.export_path)
    print(f"Backup of {len(setups)} setups saved to: {path}")


def cmd_import(args):
    """Restore setups from a JSON backup (new ids are assigned)."""
    from export.backup_exporter import load_backup

    config = get_config(args)
    setups = load_backup(args.path)

    store = open_store(config)
    try:
        # Oldest first so ids follow creation order
        for setup in reversed(setups):
            store.create(config.user_id, setup)
    finally:
        store.close()

    print(f"Imported {len(setups)} setups from {args.path}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="journal",
        description="Trading Journal CLI",
    )
    parser.add_argument(
        "--config", "-c",
        default=DEFAULT_CONFIG,
        help=f"Path to TOML config file (default: {DEFAULT_CONFIG})",
    )
    parser.add_argument("--user", "-u", help="Journal owner (overrides config user_id)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # add
    p_add = subparsers.add_parser("add", help="Log a new setup")
    p_add.add_argument("--pair", "-p", required=True, help="Instrument, e.g. EURUSD")
    p_add.add_argument("--direction", "-d", choices=["Buy", "Sell"], required=True)
    p_add.add_argument("--date", help="Entry date YYYY-MM-DD (default: today)")
    p_add.add_argument("--time", help="Entry time HH:MM (default: now, '' for none)")
    p_add.add_argument("--status", choices=["Running", "Skipped"], default="Running")
    p_add.add_argument("--sl-usd", type=float, default=0.0, help="Stop-loss distance (USD)")
    p_add.add_argument("--tp-usd", type=float, default=0.0, help="Take-profit distance (USD)")
    p_add.add_argument("--sl-amount", type=float, default=0.0, help="Money risked at SL")
    p_add.add_argument("--tp-amount", type=float, default=0.0, help="Money targeted at TP")
    p_add.add_argument("--setup-outcome", choices=["TP", "SL"], default="",
                       help="Skipped setups: what it would have hit")
    p_add.add_argument("--htf", default="", help="Satisfied HTF items, e.g. 1,2,4")
    p_add.add_argument("--ltf", default="", help="Satisfied LTF items, e.g. 1,3")
    p_add.add_argument("--risk", default="", help="Satisfied risk items, e.g. 1,2,3,4,5")
    p_add.add_argument("--notes", default="")
    p_add.add_argument("--name", default="", help="Display name (default: pair direction - date)")
    p_add.set_defaults(func=cmd_add)

    # close
    p_close = subparsers.add_parser("close", help="Close a running setup")
    p_close.add_argument("id", help="Setup id")
    p_close.add_argument("--outcome", "-o", choices=CLOSE_OUTCOMES, required=True)
    p_close.add_argument("--pnl", type=float,
                         help="Final PnL for SL+, Cutloss and Manual closes")
    p_close.set_defaults(func=cmd_close)

    # list
    p_list = subparsers.add_parser("list", help="List setups")
    p_list.add_argument("--pair", help="Only this pair")
    p_list.add_argument("--status", choices=STATUSES, help="Only this status")
    p_list.set_defaults(func=cmd_list)

    # show
    p_show = subparsers.add_parser("show", help="Show one setup")
    p_show.add_argument("id", help="Setup id")
    p_show.set_defaults(func=cmd_show)

    # delete
    p_delete = subparsers.add_parser("delete", help="Delete a setup")
    p_delete.add_argument("id", help="Setup id")
    p_delete.set_defaults(func=cmd_delete)

    # stats
    p_stats = subparsers.add_parser("stats", help="Show dashboard statistics")
    p_stats.set_defaults(func=cmd_stats)

    # analytics
    p_an = subparsers.add_parser("analytics", help="Show win rates, entry times, PnL curve")
    p_an.add_argument("--day", help="Only entries on this weekday (Sun..Sat)")
    p_an.add_argument("--start", type=int, help="Histogram start, minutes since midnight")
    p_an.add_argument("--end", type=int, help="Histogram end, minutes since midnight")
    p_an.add_argument("--step", type=int, help="Histogram bucket width (minutes)")
    p_an.add_argument("--bucketing", choices=["range", "exact"])
    p_an.add_argument("--month", type=parse_month, help="Activity month YYYY-MM (default: current)")
    p_an.set_defaults(func=cmd_analytics)

    # report
    p_report = subparsers.add_parser("report", help="Generate an HTML analytics report")
    p_report.add_argument("--output", "-o", help="Output .html path")
    p_report.add_argument("--csv", action="store_true", help="Also export the setup log CSV")
    p_report.add_argument("--png", help="Also save a cumulative PnL chart to this PNG")
    p_report.set_defaults(func=cmd_report)

    # export
    p_export = subparsers.add_parser("export", help="Write a JSON backup")
    p_export.add_argument("--output", "-o", help="Output .json path")
    p_export.set_defaults(func=cmd_export)

    # import
    p_import = subparsers.add_parser("import", help="Restore setups from a JSON backup")
    p_import.add_argument("path", help="Backup .json file")
    p_import.set_defaults(func=cmd_import)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    load_env()
    config = get_config(args)

    from journal.utils import setup_logging
    setup_logging(config.log_level, config.log_file)

    try:
        args.func(args)
    except (JournalError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

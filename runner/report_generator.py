"""Report generation: console summaries, HTML reports, and chart exports."""

import html
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd

from journal.analytics import Analytics, DAY_NAMES
from journal.models import MAX_SCORE, Setup, ExecutedSetup, setup_to_dict
from journal.utils import (
    get_reports_dir, format_currency, format_signed_currency, format_percentage,
)

logger = logging.getLogger(__name__)

# Cell shades for the monthly activity grid, by number of setups that day
ACTIVITY_COLORS = {0: "#f3f4f6", 1: "#e0e7ff", 2: "#a5b4fc"}
ACTIVITY_COLOR_BUSY = "#4f46e5"


class ReportGenerator:
    """Generates visual reports from a journal's setups."""

    def __init__(self, setups: Sequence[Setup], title: str = "Trading Journal",
                 day: Optional[str] = None, start: int = 0, end: int = 1440,
                 step: int = 15, bucketing: str = "range",
                 year: Optional[int] = None, month: Optional[int] = None):
        self.setups = list(setups)
        self.title = title
        self.analytics = Analytics(self.setups)
        self.views = self.analytics.calculate_all(
            day=day, start=start, end=end, step=step, bucketing=bucketing,
            year=year, month=month,
        )

    def print_console_summary(self) -> None:
        """Print formatted KPI table to stdout."""
        s = self.views["summary"]
        w = self.views["win_rates"]
        d = self.views["outcome_distribution"]
        drawdowns = [p["drawdown"] for p in self.views["drawdown"]]
        max_dd = min(drawdowns) if drawdowns else 0.0

        print(f"\n{'=' * 55}")
        print(f"  {self.title}")
        print(f"{'=' * 55}")

        rows = [
            ("Setups", f"{s['count']}"),
            ("Running", f"{s['running_count']}"),
            ("Skipped", f"{s['skipped_count']}"),
            ("Executed", f"{s['executed_count']}"),
            ("", ""),
            ("Total PnL", format_signed_currency(s["total_pnl"])),
            ("Max Drawdown", format_currency(max_dd)),
            ("Trade Win Rate", f"{format_percentage(w['trade_win_rate'])} "
                               f"({w['trade_wins']}/{w['executed_count']})"),
            ("Setup Win Rate", f"{format_percentage(w['setup_win_rate'])} "
                               f"({w['setup_wins']}/{w['decided_count']})"),
            ("Wins / Losses / BE", f"{d['win']} / {d['loss']} / {d['breakeven']}"),
            ("", ""),
            ("Avg Score", f"{s['avg_score']:.1f}/{MAX_SCORE}"),
            ("Avg RR", f"1:{s['avg_rr']:.2f}"),
        ]

        for label, value in rows:
            if label == "":
                print(f"{'─' * 55}")
            else:
                print(f"  {label:<30} {value:>22}")

        print(f"{'=' * 55}\n")

    def export_setup_log(self, output_path: str = None) -> str:
        """Export the setup list as CSV (one row per setup, checklist flattened).

        Returns:
            Path to the saved CSV file
        """
        if output_path is None:
            name = self.title.replace(" ", "_").lower()
            output_path = str(get_reports_dir() / f"{name}_setups.csv")

        rows = []
        for setup in self.setups:
            row = setup_to_dict(setup)
            checklist = row.pop("checklist")
            row["screenshotUrls"] = " ".join(row["screenshotUrls"])
            for group, answers in checklist.items():
                for i, answer in enumerate(answers, start=1):
                    row[f"{group}_{i}"] = answer
            rows.append(row)

        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        pd.DataFrame(rows).to_csv(output_path, index=False)
        logger.info(f"Setup log exported to {output_path}")
        return output_path

    def generate_html_report(self, output_path: str = None) -> str:
        """Generate a standalone HTML report with embedded charts.

        Includes:
        - KPI summary table
        - Outcome pie, score consistency, entry-time histogram
        - Cumulative PnL and drawdown charts
        - Monthly activity calendar
        - Setup table

        Returns:
            Path to the saved HTML file
        """
        if output_path is None:
            name = self.title.replace(" ", "_").lower()
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            output_path = str(get_reports_dir() / f"{name}_{timestamp}.html")

        html_content = self._generate_plotly_report()

        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        Path(output_path).write_text(html_content, encoding="utf-8")
        logger.info(f"HTML report saved to {output_path}")
        return output_path

    def build_figure(self):
        """Plotly figure with the five analytics charts."""
        import plotly.graph_objects as go
        from plotly.subplots import make_subplots

        v = self.views
        fig = make_subplots(
            rows=3, cols=2,
            specs=[
                [{"type": "domain"}, {"type": "xy"}],
                [{"type": "xy", "colspan": 2}, None],
                [{"type": "xy"}, {"type": "xy"}],
            ],
            subplot_titles=("Outcomes", "Checklist Score", "Entry Time",
                            "Cumulative PnL", "Drawdown"),
            row_heights=[0.35, 0.3, 0.35],
            vertical_spacing=0.1,
        )

        pie = v["outcome_chart"]
        if pie:
            fig.add_trace(
                go.Pie(
                    labels=[p["name"] for p in pie],
                    values=[p["value"] for p in pie],
                    marker=dict(colors=[p["color"] for p in pie]),
                    hole=0.4, name="Outcomes",
                ),
                row=1, col=1,
            )

        scores = v["score_series"]
        fig.add_trace(
            go.Scatter(
                x=[p["index"] for p in scores], y=[p["score"] for p in scores],
                text=[p["pair"] for p in scores],
                mode="lines+markers", name="Score",
                line=dict(color="#6366f1", width=2),
            ),
            row=1, col=2,
        )

        times = v["entry_times"]
        fig.add_trace(
            go.Bar(
                x=[b["time"] for b in times], y=[b["trades"] for b in times],
                name="Entries", marker_color="#6366f1",
            ),
            row=2, col=1,
        )

        pnl = v["cumulative_pnl"]
        fig.add_trace(
            go.Scatter(
                x=[p["index"] for p in pnl], y=[p["pnl"] for p in pnl],
                text=[p["date"] for p in pnl],
                mode="lines", name="Cumulative PnL",
                line=dict(color="#10b981", width=3),
            ),
            row=3, col=1,
        )

        dd = v["drawdown"]
        fig.add_trace(
            go.Scatter(
                x=[p["index"] for p in dd], y=[p["drawdown"] for p in dd],
                text=[p["date"] for p in dd],
                mode="lines", name="Drawdown",
                line=dict(color="#ef4444", width=3),
                fill="tozeroy", fillcolor="rgba(239,68,68,0.15)",
            ),
            row=3, col=2,
        )

        fig.update_layout(
            title=dict(text=f"{self.title} - Analytics", font=dict(size=20)),
            height=1100,
            showlegend=False,
            template="plotly_white",
        )
        fig.update_yaxes(title_text="Score", range=[0, MAX_SCORE], row=1, col=2)
        fig.update_yaxes(title_text="Trades", row=2, col=1)
        fig.update_yaxes(title_text="PnL ($)", row=3, col=1)
        fig.update_yaxes(title_text="Drawdown ($)", row=3, col=2)
        fig.update_xaxes(title_text="Trade #", row=3, col=1)
        fig.update_xaxes(title_text="Trade #", row=3, col=2)
        return fig

    def _generate_plotly_report(self) -> str:
        """Generate HTML report with Plotly interactive charts."""
        import plotly.io as pio

        chart_html = pio.to_html(self.build_figure(), full_html=False, include_plotlyjs="cdn")

        s = self.views["summary"]
        w = self.views["win_rates"]
        kpi_rows = ""
        kpi_data = [
            ("Total Setups", f"{s['count']}"),
            ("Running", f"{s['running_count']}"),
            ("Total PnL", format_signed_currency(s["total_pnl"])),
            ("Trade Win Rate", f"{format_percentage(w['trade_win_rate'])} "
                               f"({w['trade_wins']}/{w['executed_count']})"),
            ("Setup Win Rate", f"{format_percentage(w['setup_win_rate'])} "
                               f"({w['setup_wins']}/{w['decided_count']})"),
            ("Avg Score", f"{s['avg_score']:.1f}/{MAX_SCORE}"),
            ("Avg RR", f"1:{s['avg_rr']:.2f}"),
        ]
        for label, value in kpi_data:
            kpi_rows += f"<tr><td>{label}</td><td>{value}</td></tr>\n"

        setup_rows = ""
        for setup in self.setups:
            if isinstance(setup, ExecutedSetup):
                pnl_color = "#10b981" if setup.is_winner else "#ef4444"
                pnl_cell = (f'<td style="color:{pnl_color}">'
                            f"{format_signed_currency(setup.pnl)}</td>")
                outcome = setup.outcome
            else:
                pnl_cell = "<td></td>"
                outcome = getattr(setup, "setup_outcome", "")
            setup_rows += f"""<tr>
                    <td>{html.escape(setup.date)} {html.escape(setup.time)}</td>
                    <td>{html.escape(setup.name)}</td>
                    <td>{html.escape(setup.pair)}</td>
                    <td>{setup.direction}</td>
                    <td>{setup.status}</td>
                    <td>{outcome}</td>
                    <td>{setup.score}/{MAX_SCORE}</td>
                    <td>1:{setup.rr_ratio:.2f}</td>
                    {pnl_cell}
                </tr>\n"""

        return f"""<!DOCTYPE html>
<html><head>
<meta charset="utf-8">
<title>{html.escape(self.title)} - Analytics Report</title>
<style>
    body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
           margin: 20px; background: #fafafa; color: #333; }}
    h1 {{ color: #312e81; }}
    h2 {{ color: #3730a3; margin-top: 30px; }}
    table {{ border-collapse: collapse; width: 100%; margin: 10px 0; }}
    th, td {{ border: 1px solid #ddd; padding: 8px 12px; text-align: left; }}
    th {{ background: #e0e7ff; font-weight: 600; }}
    tr:nth-child(even) {{ background: #f5f5f5; }}
    .kpi-table {{ max-width: 500px; }}
    .kpi-table td:first-child {{ font-weight: 600; width: 200px; }}
    .kpi-table td:last-child {{ text-align: right; }}
    .calendar {{ max-width: 420px; table-layout: fixed; }}
    .calendar td, .calendar th {{ text-align: center; padding: 6px; }}
    .setup-table {{ font-size: 0.9em; overflow-x: auto; }}
    .report-meta {{ color: #666; font-size: 0.9em; }}
</style>
</head><body>
<h1>{html.escape(self.title)}</h1>
<p class="report-meta">Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')} |
Setups: {len(self.setups):,}</p>

<h2>Performance Summary</h2>
<table class="kpi-table">
{kpi_rows}
</table>

<h2>Charts</h2>
{chart_html}

<h2>Monthly Activity</h2>
{self._activity_calendar_html()}

<h2>Setups ({len(self.setups)})</h2>
<div class="setup-table">
<table>
<tr><th>Entry</th><th>Name</th><th>Pair</th><th>Direction</th><th>Status</th>
    <th>Outcome</th><th>Score</th><th>RR</th><th>PnL</th></tr>
{setup_rows}
</table>
</div>

</body></html>"""

    def _activity_calendar_html(self) -> str:
        """Sunday-first 7-column grid of setups per day."""
        days = self.views["daily_activity"]
        if not days:
            return "<p><em>No dated setups yet.</em></p>"

        header = "".join(f"<th>{name}</th>" for name in DAY_NAMES)
        weeks = {}
        for day in days:
            weeks.setdefault(day["week"], {})[day["weekday"]] = day

        body = ""
        for week in sorted(weeks):
            cells = ""
            for weekday in range(7):
                day = weeks[week].get(weekday)
                if day is None:
                    cells += "<td></td>"
                    continue
                color = ACTIVITY_COLORS.get(day["count"], ACTIVITY_COLOR_BUSY)
                text_color = "#fff" if day["count"] > 2 else "#333"
                cells += (f'<td style="background:{color};color:{text_color}" '
                          f'title="{day["date"]}: {day["count"]} trade(s)">{day["day"]}</td>')
            body += f"<tr>{cells}</tr>\n"

        month_label = days[0]["date"][:7]
        return (f"<p class=\"report-meta\">{month_label}</p>\n"
                f"<table class=\"calendar\"><tr>{header}</tr>\n{body}</table>")

    def plot_cumulative_pnl(self, save_path: str = None) -> None:
        """Display or save the cumulative PnL and drawdown plot using matplotlib.

        Args:
            save_path: Path to save PNG. If None, displays interactively.
        """
        import matplotlib.pyplot as plt

        pnl = self.views["cumulative_pnl"]
        dd = self.views["drawdown"]
        x = [p["index"] for p in pnl]

        fig, axes = plt.subplots(2, 1, figsize=(12, 8), gridspec_kw={"height_ratios": [3, 1]})

        axes[0].plot(x, [p["pnl"] for p in pnl], color="#10b981", linewidth=1.5)
        axes[0].fill_between(x, [p["pnl"] for p in pnl], alpha=0.1, color="#10b981")
        axes[0].set_title(f"{self.title} - Cumulative PnL")
        axes[0].set_ylabel("PnL ($)")
        axes[0].grid(True, alpha=0.3)

        axes[1].fill_between(x, [p["drawdown"] for p in dd], color="#ef4444", alpha=0.3)
        axes[1].plot(x, [p["drawdown"] for p in dd], color="#ef4444", linewidth=1)
        axes[1].set_title("Drawdown ($)")
        axes[1].set_xlabel("Trade #")
        axes[1].grid(True, alpha=0.3)

        plt.tight_layout()

        if save_path:
            plt.savefig(save_path, dpi=150, bbox_inches="tight")
            logger.info(f"Chart saved to {save_path}")
        else:
            plt.show()

        plt.close(fig)

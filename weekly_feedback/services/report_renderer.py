"""
Markdown rendering for weekly analyses.

Section order: risk alerts (critical, high, then everything else), executive
summary, highlights, recognition, team overview table, trends, recommended
actions, then one section per member.
"""

from typing import List, Optional

from ..models.report import RISK_CATEGORY_LABELS, ReportAnalysis, RiskAlert
from ..utils.datetime_utils import Period, format_timestamp

SENTIMENT_LABELS = {
    "positive": "😊 Positive",
    "neutral": "😐 Neutral",
    "concerned": "😟 Concerned",
}
SENTIMENT_ICONS = {"positive": "😊", "neutral": "😐", "concerned": "😟"}
TREND_ARROWS = {"up": "↑", "down": "↓", "stable": "→"}


def format_category(category: str) -> str:
    return RISK_CATEGORY_LABELS.get(category, category)


def format_sentiment(sentiment: str) -> str:
    return SENTIMENT_LABELS.get(sentiment, sentiment)


def _detailed_risk(risk: RiskAlert) -> List[str]:
    lines = [
        f"- **{risk.title}** ({format_category(risk.category)})",
        f"  {risk.description}",
        f"  *Reported by: {risk.source}*",
    ]
    if risk.recommendation:
        lines.append(f"  → {risk.recommendation}")
    lines.append("")
    return lines


def _risk_section(risks: List[RiskAlert]) -> List[str]:
    if not risks:
        return []

    critical = [r for r in risks if r.severity == "critical"]
    high = [r for r in risks if r.severity == "high"]
    other = [r for r in risks if r.severity not in ("critical", "high")]

    out = ["## ⚠️ Risk Alerts", ""]
    if critical:
        out.append("### 🔴 Critical")
        for risk in critical:
            out.extend(_detailed_risk(risk))
    if high:
        out.append("### 🟠 High Priority")
        for risk in high:
            out.extend(_detailed_risk(risk))
    if other:
        out.append("### 🟡 Monitor")
        for risk in other:
            out.append(f"- **{risk.title}** ({format_category(risk.category)}) - {risk.description}")
        out.append("")
    return out


def _bullets(title: str, items: List[str]) -> List[str]:
    if not items:
        return []
    return [title, ""] + [f"- {item}" for item in items] + [""]


def render_markdown(
    analysis: ReportAnalysis,
    period: Period,
    workspace_name: str,
    generated_label: Optional[str] = None,
) -> str:
    """Render an analysis as the Markdown document stored with the report."""
    out = [
        "# Weekly Executive Report",
        f"## Week {period.week}, {period.year} | {workspace_name}",
        "",
        f"*Generated: {generated_label or format_timestamp(analysis.generated_at)}*",
        "",
    ]

    out.extend(_risk_section(analysis.risks))

    out.extend(["## Executive Summary", "", analysis.executive_summary, ""])

    out.extend(_bullets("## 🌟 Key Highlights", analysis.key_highlights))

    if analysis.team_recognition:
        out.extend(["## 🏆 Team Recognition", ""])
        for r in analysis.team_recognition:
            out.append(f"- **{r.recipient}** recognized by {r.from_}: {r.reason}")
        out.append("")

    overview = analysis.team_overview
    out.extend([
        "## Team Overview",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Submission Rate | {overview.submission_rate}% |",
        f"| Submitted | {overview.submitted_count}/{overview.total_members} |",
        f"| Overall Sentiment | {format_sentiment(overview.overall_sentiment)} |",
        "",
    ])
    if overview.common_themes:
        out.extend([f"**Common Themes:** {', '.join(overview.common_themes)}", ""])

    if analysis.trends:
        out.extend(["## 📈 Trends", ""])
        for t in analysis.trends:
            out.append(f"- {TREND_ARROWS.get(t.direction, '→')} **{t.metric}**: {t.description}")
        out.append("")

    if analysis.recommended_actions:
        out.extend(["## ✅ Recommended Actions", ""])
        for i, action in enumerate(analysis.recommended_actions, start=1):
            out.append(f"{i}. {action}")
        out.append("")

    out.extend(["## Team Member Updates", ""])
    for m in analysis.member_summaries:
        out.extend([f"### {m.member_name} {SENTIMENT_ICONS.get(m.sentiment, '😐')}", "", m.summary, ""])
        out.extend(_bullets("**Accomplishments:**", m.key_accomplishments))
        out.extend(_bullets("**Blockers:**", m.blockers))
        out.extend(_bullets("**Priorities:**", m.priorities))
        if m.risk_flags:
            out.extend([f"**⚠️ Risk Flags:** {', '.join(m.risk_flags)}", ""])
        out.extend(["---", ""])

    return "\n".join(out)

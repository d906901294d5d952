"""Prompt templates for DeepSeek AI interactions."""

from typing import List

from ..models.submission import SubmissionView
from ..utils.datetime_utils import Period


def submission_rate(submitted: int, total: int) -> int:
    """Whole-number percentage; 0 when nobody is on the team."""
    if total <= 0:
        return 0
    return round(submitted / total * 100)


class PromptTemplates:
    """Collection of prompt templates for weekly feedback analysis."""

    REPORT_SYSTEM_PROMPT = """You are an expert business analyst helping managers understand their team's weekly progress.
Your role is to analyze weekly feedback submissions and produce a structured executive report.

CRITICAL: You must identify and flag any risks in these categories:
- Health & Safety: Physical safety concerns, workplace hazards, wellbeing issues, burnout indicators
- Legal & Compliance: Regulatory issues, contract risks, policy violations, data protection concerns
- Financial & Budget: Cost overruns, revenue risks, resource constraints, budget concerns

Be thorough but concise. Focus on actionable insights.

IMPORTANT: Respond ONLY with valid JSON matching the requested schema. No markdown, no explanation, just the JSON object."""

    SUBMISSION_SYSTEM_PROMPT = """You help a manager read weekly status updates from their team.
Be brief, specific and supportive. Respond ONLY with a JSON object."""

    @staticmethod
    def _format_submission(index: int, s: SubmissionView) -> str:
        return f"""
--- SUBMISSION {index}: {s.member_name} ({s.member_email}) ---
ACCOMPLISHMENTS THIS WEEK:
{s.accomplishments or 'None provided'}

PROGRESS ON LAST WEEK'S PRIORITIES:
{s.previous_week_progress or 'None provided'}

BLOCKERS:
{s.blockers or 'None provided'}

PRIORITIES FOR NEXT WEEK:
{s.priorities or 'None provided'}

SHOUTOUTS/RECOGNITION (team members who stood out):
{s.shoutouts or 'None provided'}
---"""

    @classmethod
    def report_prompt(
        cls,
        submissions: List[SubmissionView],
        period: Period,
        workspace_name: str,
        total_members: int,
    ) -> str:
        """Generate the prompt asking for a full weekly analysis as JSON."""
        count = len(submissions)
        rate = submission_rate(count, total_members)
        body = "\n".join(cls._format_submission(i + 1, s) for i, s in enumerate(submissions))

        return f"""Analyze these {count} weekly feedback submissions for Week {period.week}, {period.year}.
Workspace: {workspace_name}
Total team members: {total_members}
Submission rate: {rate}%

SUBMISSIONS:
{body}

Respond with a JSON object matching this exact structure:
{{
  "executiveSummary": "2-3 paragraph overview of the week's progress, key themes, and overall team health",
  "keyHighlights": ["up to 5 key positive highlights"],
  "teamRecognition": [
    {{"recipient": "Name of person being recognized", "from": "Name of person giving recognition", "reason": "Why they were recognized"}}
  ],
  "risks": [
    {{
      "category": "health_safety" | "legal_compliance" | "financial_budget",
      "severity": "low" | "medium" | "high" | "critical",
      "title": "Brief title",
      "description": "Detailed description of the risk",
      "source": "Team member name who reported it",
      "recommendation": "Suggested action to mitigate"
    }}
  ],
  "trends": [
    {{"metric": "Name of trend", "direction": "up" | "down" | "stable", "description": "What this trend means"}}
  ],
  "teamOverview": {{
    "submissionRate": {rate},
    "totalMembers": {total_members},
    "submittedCount": {count},
    "commonThemes": ["common themes across submissions"],
    "overallSentiment": "positive" | "neutral" | "concerned"
  }},
  "memberSummaries": [
    {{
      "memberId": "member's id",
      "memberName": "member's name",
      "memberEmail": "member's email",
      "summary": "1-2 sentence summary of their week",
      "keyAccomplishments": ["accomplishment"],
      "progressOnPreviousPriorities": "Brief assessment of progress on last week's priorities",
      "blockers": ["blocker"],
      "priorities": ["priority"],
      "shoutoutsGiven": ["who they recognized and why"],
      "sentiment": "positive" | "neutral" | "concerned",
      "riskFlags": ["any specific risks this person flagged"]
    }}
  ],
  "recommendedActions": ["top 3-5 recommended actions for the manager"]
}}

IMPORTANT:
- Include a memberSummary for each of the {count} submissions
- Extract ALL shoutouts/recognition mentions into the teamRecognition array
- If there are no risks, return an empty risks array
- If there are no shoutouts, return an empty teamRecognition array
- Be specific and actionable in your analysis"""

    @staticmethod
    def submission_insight_prompt(accomplishments: str, blockers: str, priorities: str) -> str:
        """Ask for a short summary and one follow-up question for a single submission."""
        return f"""Summarize this weekly feedback in 2-3 sentences, then suggest one thoughtful follow-up question.

Accomplishments: {accomplishments}
Blockers: {blockers}
Priorities: {priorities}

Respond with JSON: {{"summary": "...", "question": "..."}}"""

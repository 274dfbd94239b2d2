"""Human-readable text for assignment results (summary field and comments)."""

from __future__ import annotations

from collections.abc import Sequence

from jira_assign.core.config import SIGNIFICANT_WORKLOG_HOURS, SUMMARY_REASON_LIMIT

from .types import CandidateScore


def generate_assignment_summary(candidate: CandidateScore | None) -> str:
    """Short reason for why ``candidate`` was picked, e.g. "Label expertise (frontend)"."""
    if candidate is None or candidate.evidence is None:
        return "Auto-assigned"
    evidence = candidate.evidence
    reasons: list[str] = []

    if evidence.labels:
        reasons.append(f"label expertise ({evidence.labels[0].key})")
    if evidence.components:
        reasons.append(f"component knowledge ({evidence.components[0].key})")
    if evidence.issue_types:
        reasons.append(f"{evidence.issue_types[0].key} experience")
    if evidence.find_interaction("historical-assignee"):
        reasons.append("previously assigned similar issues")
    worklog = evidence.find_interaction("worklog")
    if worklog and (worklog.hours or 0) > SIGNIFICANT_WORKLOG_HOURS:
        reasons.append("significant time logged")
    if evidence.epics:
        reasons.append("epic familiarity")
    if evidence.parents:
        reasons.append("related parent work")

    if not reasons:
        return f"Best available (score: {candidate.final_score:.1f})"
    summary = ", ".join(reasons[:SUMMARY_REASON_LIMIT])
    return summary[0].upper() + summary[1:]


def assignment_comment(
    chosen: CandidateScore,
    alternatives: Sequence[CandidateScore],
    declined: Sequence[str],
    actor_display_name: str | None = None,
) -> str:
    actor = f"{actor_display_name} triggered auto-assignment." if actor_display_name else "Auto-assignment completed."
    primary = f"{chosen.display_name} has been recommended (score {chosen.final_score:.2f})."
    if alternatives:
        listed = ", ".join(f"{c.display_name} ({c.final_score:.2f})" for c in alternatives)
        alt_text = f"Alternatives: {listed}."
    else:
        alt_text = "No further alternatives are currently available."
    declined_text = f"Declined so far: {', '.join(declined)}." if declined else ""
    return " ".join(part for part in (actor, primary, alt_text, declined_text) if part)


def decline_comment(declined_account_id: str, actor_display_name: str | None = None) -> str:
    actor = actor_display_name or "A user"
    return (
        f"{actor} declined the recommendation for account {declined_account_id}. "
        "Looking for the next best option..."
    )

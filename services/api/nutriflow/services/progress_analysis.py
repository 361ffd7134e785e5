"""Client progress analysis.

Pure functions over a weight history ordered most recent first, plus the
database helpers that feed them (history, current-weight projection,
template effectiveness and recommendations).
"""

import logging
import math
from datetime import date, timedelta
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..models import Client, MealPlanTemplate, Practitioner, ProgressEntry
from ..schemas import (
    NextMilestone,
    ProgressAnalysis,
    ProgressEntryCreate,
    ProgressReport,
    TemplateEffectiveness,
)

logger = logging.getLogger("nutriflow.progress")

TREND_THRESHOLD = 0.5
WEEKLY_WINDOW = 4
CONSISTENCY_TARGET_ENTRIES = 12
SUCCESS_THRESHOLD = 80
DEFAULT_MILESTONE_WEEKS = 4
MAX_RECOMMENDED_TEMPLATES = 5


class ProgressAnalysisError(Exception):
    pass


class NoProgressDataError(ProgressAnalysisError):
    """The client has no recorded weight. Distinct from zero progress."""


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def calculate_trend(weights: Sequence[float]) -> str:
    """Most recent vs third most recent weight; fewer than 3 entries is stable."""
    if len(weights) < 3:
        return "stable"
    delta = weights[0] - weights[2]
    if delta > TREND_THRESHOLD:
        return "gaining"
    if delta < -TREND_THRESHOLD:
        return "losing"
    return "stable"


def weekly_average_change(weights: Sequence[float]) -> float:
    """Average delta per entry over the most recent window. Negative means losing."""
    window = list(weights[:WEEKLY_WINDOW])
    if len(window) <= 1:
        return 0.0
    return (window[0] - window[-1]) / (len(window) - 1)


def progress_percentage(current: float, starting: float, goal: float) -> float:
    distance = abs(goal - starting)
    if distance == 0:
        return 0.0
    return min(100.0, abs(current - starting) / distance * 100)


def milestone_increment(remaining: float) -> int:
    if remaining > 10:
        return 5
    if remaining >= 5:
        return 2
    return 1


def next_milestone(
    current: float,
    goal: float,
    weekly_rate: float,
    today: Optional[date] = None,
) -> NextMilestone:
    """Next intermediate target toward the goal, never past it."""
    today = today or date.today()
    step = milestone_increment(abs(goal - current))
    if current > goal:
        target = max(goal, current - step)
    else:
        target = min(goal, current + step)

    if abs(weekly_rate) < 1e-3:
        weeks = DEFAULT_MILESTONE_WEEKS
    else:
        weeks = math.ceil(round(abs(target - current) / abs(weekly_rate), 6))

    return NextMilestone(
        target=round(target, 2),
        weeks=weeks,
        estimated_date=today + timedelta(weeks=weeks),
    )


def trend_stability(weights: Sequence[float]) -> float:
    """100 minus ten times the variance of consecutive deltas, floored at 0."""
    if len(weights) < 3:
        return 0.0
    changes = [weights[i - 1] - weights[i] for i in range(1, len(weights))]
    mean = sum(changes) / len(changes)
    variance = sum((c - mean) ** 2 for c in changes) / len(changes)
    return _clamp(100 - variance * 10)


def effectiveness_score(weights: Sequence[float], goal: float) -> float:
    """0.5 progress + 0.3 consistency + 0.2 stability, each clamped to [0, 100]."""
    if len(weights) < 2:
        return 0.0

    start, current = weights[-1], weights[0]
    target_change = abs(goal - start)
    progress = abs(current - start) / target_change * 100 if target_change > 0 else 0.0

    progress = _clamp(progress)
    consistency = _clamp(len(weights) / CONSISTENCY_TARGET_ENTRIES * 100)
    stability = _clamp(trend_stability(weights))

    return _clamp(progress * 0.5 + consistency * 0.3 + stability * 0.2)


def analyze_progress(
    client: Client,
    entries: Sequence[ProgressEntry],
    recommended_templates: Sequence[str] = (),
    today: Optional[date] = None,
) -> ProgressAnalysis:
    """Entries must be ordered most recent first."""
    if not entries:
        raise NoProgressDataError(f"No progress data available for client {client.id}")

    weights = [e.weight for e in entries]
    current = client.current_weight or weights[0]
    goal = client.goal_weight or current
    starting = weights[-1]
    weekly = weekly_average_change(weights)

    return ProgressAnalysis(
        client_id=client.id,
        current_weight=current,
        goal_weight=goal,
        starting_weight=starting,
        weight_change=round(current - starting, 2),
        progress_percentage=round(progress_percentage(current, starting, goal), 2),
        weekly_average_loss=round(weekly, 2),
        monthly_trend=calculate_trend(weights),
        next_milestone=next_milestone(current, goal, weekly, today=today),
        effectiveness_score=round(effectiveness_score(weights, goal), 1),
        recommended_templates=list(recommended_templates),
    )


# --- Database helpers ---

def get_progress_history(db: Session, client_id: str) -> list[ProgressEntry]:
    return list(db.scalars(
        select(ProgressEntry)
        .where(ProgressEntry.client_id == client_id)
        .order_by(ProgressEntry.recorded_date.desc(), ProgressEntry.created_at.desc())
    ))


def recompute_current_weight(db: Session, client: Client) -> Optional[float]:
    """Project the latest recorded weight onto the client (None when no entries remain)."""
    db.flush()
    history = get_progress_history(db, client.id)
    client.current_weight = history[0].weight if history else None
    return client.current_weight


def record_progress(
    db: Session,
    practitioner: Practitioner,
    client: Client,
    data: ProgressEntryCreate,
) -> ProgressEntry:
    entry = ProgressEntry(
        client_id=client.id,
        practitioner_id=practitioner.id,
        **data.model_dump(),
    )
    db.add(entry)
    recompute_current_weight(db, client)
    return entry


def delete_progress(db: Session, client: Client, entry: ProgressEntry) -> None:
    db.delete(entry)
    recompute_current_weight(db, client)


def goal_direction(client: Client) -> str:
    if client.goal_weight is None or client.current_weight is None:
        return "maintenance"
    if client.goal_weight < client.current_weight:
        return "weight_loss"
    if client.goal_weight > client.current_weight:
        return "weight_gain"
    return "maintenance"


def recommend_templates(db: Session, client: Client) -> list[str]:
    """Most used templates of the client's practitioner matching the goal direction."""
    return list(db.scalars(
        select(MealPlanTemplate.id)
        .where(
            MealPlanTemplate.practitioner_id == client.practitioner_id,
            MealPlanTemplate.goal_type == goal_direction(client),
        )
        .order_by(MealPlanTemplate.usage_count.desc(), MealPlanTemplate.created_at)
        .limit(MAX_RECOMMENDED_TEMPLATES)
    ))


def analyze_client(db: Session, client: Client, today: Optional[date] = None) -> ProgressAnalysis:
    entries = get_progress_history(db, client.id)
    return analyze_progress(client, entries, recommend_templates(db, client), today=today)


def template_effectiveness(db: Session, practitioner: Practitioner) -> list[TemplateEffectiveness]:
    """
    Per template with at least one assigned client:
    success = client reached 80% of the way to their goal,
    dropout = client never recorded a weight.
    Sorted by success rate, best first.
    """
    templates = db.scalars(
        select(MealPlanTemplate)
        .where(MealPlanTemplate.practitioner_id == practitioner.id)
        .options(selectinload(MealPlanTemplate.assignments))
    ).all()

    results: list[TemplateEffectiveness] = []
    for template in templates:
        client_count = len(template.assignments)
        if client_count == 0:
            continue

        successes = dropouts = 0
        total_change = total_duration = 0.0
        for assignment in template.assignments:
            client = assignment.client
            history = get_progress_history(db, client.id)
            if not history:
                dropouts += 1
                continue

            start = history[-1].weight
            current = client.current_weight or history[0].weight
            goal = client.goal_weight or current
            change = abs(current - start)
            target = abs(goal - start)
            if target > 0 and change / target * 100 >= SUCCESS_THRESHOLD:
                successes += 1
            total_change += change
            total_duration += len(history)

        results.append(TemplateEffectiveness(
            template_id=template.id,
            template_name=template.name,
            client_count=client_count,
            success_rate=round(successes / client_count * 100, 1),
            average_weight_loss=round(total_change / client_count, 2),
            average_duration=round(total_duration / client_count, 1),
            client_satisfaction=template.rating or 0,
            dropout_rate=round(dropouts / client_count * 100, 1),
        ))

    results.sort(key=lambda r: r.success_rate, reverse=True)
    return results


def report_recommendations(
    analysis: ProgressAnalysis,
    effectiveness: Sequence[TemplateEffectiveness],
) -> list[str]:
    recommendations = []
    if analysis.monthly_trend == "stable" and analysis.current_weight > analysis.goal_weight:
        recommendations.append("Weight loss has stalled: consider switching meal plans")
    if -analysis.weekly_average_loss > 1:
        recommendations.append("Weight loss is faster than 1 kg per week: adjust calories")
    if analysis.effectiveness_score < 50:
        recommendations.append("Schedule a consultation to review the nutritional approach")
    if effectiveness and effectiveness[0].success_rate > SUCCESS_THRESHOLD:
        best = effectiveness[0]
        recommendations.append(
            f"Template '{best.template_name}' has the best success rate ({best.success_rate:.1f}%) and could be adapted"
        )
    return recommendations


def progress_report(db: Session, practitioner: Practitioner, client: Client) -> ProgressReport:
    analysis = analyze_client(db, client)
    effectiveness = template_effectiveness(db, practitioner)
    return ProgressReport(
        analysis=analysis,
        effectiveness=effectiveness,
        recommendations=report_recommendations(analysis, effectiveness),
    )

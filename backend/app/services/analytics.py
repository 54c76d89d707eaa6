"""
Analytics Service
=================
Aggregates mood and study session rows into the dashboard summaries.

Pure functions over rows already fetched by the routers: no DB access,
so they can be tested with plain lists of dicts. Supabase returns numeric
columns as strings for DECIMAL types, so every numeric column is coerced
before aggregating.
"""

from __future__ import annotations

import pandas as pd

# Missing productivity/difficulty ratings count as the scale midpoint
DEFAULT_RATING = 5


def _round(value: float) -> float:
    return round(float(value), 2)


def summarise_mood_sessions(rows: list[dict]) -> dict:
    """Totals, averages and label distribution for a window of mood sessions."""
    if not rows:
        return {
            "total_sessions": 0,
            "average_confidence": 0.0,
            "average_study_hours": 0.0,
            "mood_distribution": {},
            "applied_to_plan_count": 0,
            "applied_to_plan_percentage": 0.0,
        }

    df = pd.DataFrame(rows)
    confidence = pd.to_numeric(df["confidence"], errors="coerce").fillna(0.0)
    hours = pd.to_numeric(df["recommended_study_hours"], errors="coerce").fillna(0.0)
    if "applied_to_plan" in df:
        applied = df["applied_to_plan"].eq(True)
    else:
        applied = pd.Series(False, index=df.index)

    total = len(df)
    applied_count = int(applied.sum())

    return {
        "total_sessions": total,
        "average_confidence": _round(confidence.mean()),
        "average_study_hours": _round(hours.mean()),
        "mood_distribution": {
            str(label): int(count) for label, count in df["mood_type"].value_counts().items()
        },
        "applied_to_plan_count": applied_count,
        "applied_to_plan_percentage": _round(applied_count / total * 100),
    }


def summarise_study_sessions(rows: list[dict]) -> dict:
    """Hour totals, rating averages and a per-subject breakdown for completed sessions."""
    if not rows:
        return {
            "total_sessions": 0,
            "total_planned_hours": 0.0,
            "total_actual_hours": 0.0,
            "average_productivity": 0.0,
            "average_difficulty": 0.0,
            "subject_stats": {},
        }

    df = pd.DataFrame(rows)
    for column in ("planned_hours", "actual_hours", "productivity", "difficulty"):
        if column not in df:
            df[column] = None
        df[column] = pd.to_numeric(df[column], errors="coerce")

    df["actual_hours"] = df["actual_hours"].fillna(0.0)
    df["productivity"] = df["productivity"].fillna(DEFAULT_RATING)
    df["difficulty"] = df["difficulty"].fillna(DEFAULT_RATING)

    by_subject = df.groupby("subject").agg(
        count=("actual_hours", "size"),
        total_hours=("actual_hours", "sum"),
        average_productivity=("productivity", "mean"),
    )

    subject_stats = {
        str(subject): {
            "count": int(stats["count"]),
            "total_hours": _round(stats["total_hours"]),
            "average_productivity": _round(stats["average_productivity"]),
        }
        for subject, stats in by_subject.iterrows()
    }

    return {
        "total_sessions": len(df),
        "total_planned_hours": _round(df["planned_hours"].fillna(0.0).sum()),
        "total_actual_hours": _round(df["actual_hours"].sum()),
        "average_productivity": _round(df["productivity"].mean()),
        "average_difficulty": _round(df["difficulty"].mean()),
        "subject_stats": subject_stats,
    }

"""Leaderboard scorer: achievements vs derived targets -> ranked snapshot."""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Max, Sum
from django.utils import timezone

from achievements.models import Achievement
from targets.exceptions import ConcurrencyError, NotComputedError, ScoringError
from targets.models import LeaderboardRow, LeaderboardSnapshot, Period, RecalcFlag, UserWeekTarget
from targets.validators import CENT, HUNDRED, ZERO

logger = logging.getLogger(__name__)


def default_rules_version() -> str:
    return getattr(settings, "TARGETS_RULES_VERSION", "v1")


def trend_epsilon() -> Decimal:
    return Decimal(str(getattr(settings, "TARGETS_TREND_EPSILON", "0.005")))


@dataclass
class UserScore:
    user_id: object
    total_target: Decimal = ZERO
    total_achieved: Decimal = ZERO
    achievement_pct: Decimal = ZERO
    streak_days: int = 0


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def achievement_percentage(achieved: Decimal, target: Decimal) -> Decimal:
    if target <= ZERO:
        return ZERO
    return (achieved / target * HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_trend(current: Decimal, previous: Decimal | None, epsilon: Decimal | None = None) -> str:
    if previous is None:
        return LeaderboardRow.Trend.FLAT
    epsilon = trend_epsilon() if epsilon is None else epsilon
    delta = current - previous
    if delta > epsilon:
        return LeaderboardRow.Trend.UP
    if delta < -epsilon:
        return LeaderboardRow.Trend.DOWN
    return LeaderboardRow.Trend.FLAT


def compute_streak(days: set[date], period_start: date) -> int:
    """Consecutive days with activity, counted back from the latest active day."""
    if not days:
        return 0
    day = max(days)
    streak = 0
    while day >= period_start and day in days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def rank_key(score: UserScore):
    return (-score.achievement_pct, -score.total_achieved, str(score.user_id))


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

def score_period(period: Period) -> list[UserScore]:
    """Per-user totals for ``period``, sorted in rank order."""
    scores: dict[object, UserScore] = {}

    def _score(user_id) -> UserScore:
        if user_id not in scores:
            scores[user_id] = UserScore(user_id=user_id)
        return scores[user_id]

    target_rows = (
        UserWeekTarget.objects.filter(period=period)
        .values("user_id")
        .annotate(total=Sum("target_value"))
    )
    for row in target_rows:
        _score(row["user_id"]).total_target = row["total"] or ZERO

    achievements = Achievement.objects.filter(
        shop_id=period.shop_id,
        occurred_on__gte=period.start_date,
        occurred_on__lte=period.end_date,
    )
    for row in achievements.values("user_id").annotate(total=Sum("achieved_value")):
        _score(row["user_id"]).total_achieved = row["total"] or ZERO

    active_days: dict[object, set[date]] = defaultdict(set)
    for user_id, occurred_on in achievements.order_by().values_list("user_id", "occurred_on").distinct():
        active_days[user_id].add(occurred_on)

    for score in scores.values():
        score.achievement_pct = achievement_percentage(score.total_achieved, score.total_target)
        score.streak_days = compute_streak(active_days.get(score.user_id, set()), period.start_date)

    return sorted(scores.values(), key=rank_key)


def has_been_recomputed(period: Period) -> bool:
    """True once a recompute committed, even one that allocated no rows."""
    return RecalcFlag.objects.filter(period=period, cleared_at__isnull=False).exists()


def latest_snapshot(period: Period) -> LeaderboardSnapshot | None:
    return (
        LeaderboardSnapshot.objects.filter(period=period)
        .order_by("-computed_at", "-sequence")
        .first()
    )


def compute_snapshot(period: Period, rules_version: str | None = None) -> LeaderboardSnapshot:
    """Score ``period`` into a new immutable snapshot.

    Raises ``NotComputedError`` when the period has never been recomputed
    and ``ConcurrencyError`` when a concurrent call took the same sequence
    number first.
    """
    rules_version = rules_version or default_rules_version()
    try:
        with transaction.atomic():
            if not has_been_recomputed(period):
                raise NotComputedError(
                    f"Les objectifs de la periode {period.label} n'ont pas encore ete calcules."
                )

            scores = score_period(period)
            previous = latest_snapshot(period)
            previous_pct = {}
            if previous is not None:
                previous_pct = dict(previous.rows.values_list("user_id", "achievement_pct"))

            last_sequence = (
                LeaderboardSnapshot.objects.filter(period=period).aggregate(last=Max("sequence"))["last"]
                or 0
            )
            snapshot = LeaderboardSnapshot.objects.create(
                period=period,
                rules_version=rules_version,
                sequence=last_sequence + 1,
                computed_at=timezone.now(),
            )
            epsilon = trend_epsilon()
            LeaderboardRow.objects.bulk_create(
                [
                    LeaderboardRow(
                        snapshot=snapshot,
                        user_id=score.user_id,
                        rank=rank,
                        score=score.total_achieved,
                        total_target=score.total_target,
                        achievement_pct=score.achievement_pct,
                        trend=compute_trend(
                            score.achievement_pct,
                            previous_pct.get(score.user_id),
                            epsilon,
                        ),
                        streak_days=score.streak_days,
                    )
                    for rank, score in enumerate(scores, start=1)
                ]
            )
    except IntegrityError as exc:
        raise ConcurrencyError(
            f"Un autre classement de la periode {period.label} vient d'etre enregistre; reessayez."
        ) from exc
    except DatabaseError as exc:
        logger.exception("Leaderboard scoring failed for period=%s", period.pk)
        raise ScoringError(f"Erreur de stockage pendant le calcul du classement: {exc}") from exc

    logger.info(
        "Leaderboard snapshot %s (#%d, rules=%s) computed for period=%s with %d rows",
        snapshot.pk, snapshot.sequence, rules_version, period.pk, len(scores),
    )
    return snapshot


def get_rows(snapshot: LeaderboardSnapshot) -> list[LeaderboardRow]:
    return list(snapshot.rows.select_related("user").order_by("rank"))


def list_snapshots(period: Period):
    return LeaderboardSnapshot.objects.filter(period=period).order_by("-computed_at", "-sequence")


def current_leaderboard(period: Period) -> tuple[LeaderboardSnapshot | None, list[LeaderboardRow]]:
    """Latest snapshot of ``period`` and its rows, ``(None, [])`` before any scoring."""
    snapshot = latest_snapshot(period)
    if snapshot is None:
        return None, []
    return snapshot, get_rows(snapshot)

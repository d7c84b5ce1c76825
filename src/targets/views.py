"""API views for the sales targets module."""
from __future__ import annotations

import logging

from django.conf import settings
from django.shortcuts import get_object_or_404
from django.utils.cache import patch_cache_control
from rest_framework import permissions, status
from rest_framework.exceptions import NotFound
from rest_framework.generics import ListAPIView
from rest_framework.response import Response
from rest_framework.views import APIView

from api.v1.pagination import StandardResultsSetPagination
from api.v1.permissions import CanManageTargets, IsShopMember
from shops.models import Shop
from targets import progress, recalc, services
from targets.exceptions import (
    ConcurrencyError,
    NotComputedError,
    RecomputeError,
    ScoringError,
    TargetsError,
    ValidationError,
)
from targets.leaderboard import current_leaderboard, list_snapshots
from targets.models import (
    LeaderboardSnapshot,
    MonthlyTarget,
    Period,
    UserWeekTarget,
    WeeklyDistribution,
    WeeklyRoleWeight,
)
from targets.serializers import (
    CategoryPerformanceSerializer,
    LeaderboardRowSerializer,
    LeaderboardSnapshotSerializer,
    MonthlyTargetItemSerializer,
    MonthlyTargetSerializer,
    PeriodCreateSerializer,
    PeriodDetailSerializer,
    PeriodSerializer,
    PeriodWeekSerializer,
    RecalcFlagSerializer,
    SnapshotRequestSerializer,
    StatusTransitionSerializer,
    UserWeekTargetSerializer,
    WeekProgressSerializer,
    WeeklyDistributionItemSerializer,
    WeeklyDistributionSerializer,
    WeeklyRoleWeightItemSerializer,
    WeeklyRoleWeightSerializer,
    validate_items,
)
from targets.validators import SCOPES, find_violations

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    RecomputeError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    NotComputedError: status.HTTP_409_CONFLICT,
    ConcurrencyError: status.HTTP_409_CONFLICT,
    ScoringError: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def error_response(exc: TargetsError) -> Response:
    code = next(
        (http for klass, http in ERROR_STATUS.items() if isinstance(exc, klass)),
        status.HTTP_400_BAD_REQUEST,
    )
    return Response(exc.to_dict(), status=code)


def _truthy(value) -> bool:
    return str(value).lower() in ("1", "true", "yes", "on")


# ────────────────────────────────────────────────────────────
# Scoping helpers
# ────────────────────────────────────────────────────────────

class PeriodScopedMixin:
    """Resolve ``period_id`` from the URL; permissions read ``get_shop_id``."""

    def get_period(self) -> Period:
        if not hasattr(self, "_period"):
            self._period = (
                Period.objects.select_related("shop", "recalc_flag")
                .filter(pk=self.kwargs["period_id"])
                .first()
            )
        if self._period is None:
            raise NotFound("Periode introuvable.")
        return self._period

    def get_shop_id(self):
        try:
            return self.get_period().shop_id
        except NotFound:
            return None


class ManagePermissionMixin:
    permission_classes = [permissions.IsAuthenticated, CanManageTargets]


# ────────────────────────────────────────────────────────────
# Periods
# ────────────────────────────────────────────────────────────

class ShopPeriodListView(ManagePermissionMixin, APIView):
    """
    GET  /api/v1/shops/<shop_id>/periods/
    POST /api/v1/shops/<shop_id>/periods/  {"year": 2026, "month": 3}
    """

    def get(self, request, shop_id):
        periods = Period.objects.filter(shop_id=shop_id).select_related("recalc_flag")
        return Response(PeriodSerializer(periods, many=True).data)

    def post(self, request, shop_id):
        shop = get_object_or_404(Shop, pk=shop_id, is_active=True)
        serializer = PeriodCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            period = services.create_period(shop, **serializer.validated_data)
        except TargetsError as exc:
            return error_response(exc)
        return Response(PeriodDetailSerializer(period).data, status=status.HTTP_201_CREATED)


class PeriodDetailView(PeriodScopedMixin, APIView):
    """GET /api/v1/periods/<id>/?include_weeks=true"""
    permission_classes = [permissions.IsAuthenticated, IsShopMember]

    def get(self, request, period_id):
        period = self.get_period()
        if _truthy(request.query_params.get("include_weeks", "false")):
            return Response(PeriodDetailSerializer(period).data)
        return Response(PeriodSerializer(period).data)


class PeriodWeeksView(PeriodScopedMixin, APIView):
    permission_classes = [permissions.IsAuthenticated, IsShopMember]

    def get(self, request, period_id):
        weeks = self.get_period().weeks.order_by("week_index")
        return Response(PeriodWeekSerializer(weeks, many=True).data)


class PeriodStatusView(PeriodScopedMixin, ManagePermissionMixin, APIView):
    """
    PATCH /api/v1/periods/<id>/status/  {"status": "published"}
    Publishing or locking requires every percentage sum to equal 100.
    """

    def patch(self, request, period_id):
        serializer = StatusTransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            period = services.request_status_transition(
                self.get_period(), serializer.validated_data["status"]
            )
        except TargetsError as exc:
            return error_response(exc)
        period.refresh_from_db()
        return Response(PeriodSerializer(period).data)


# ────────────────────────────────────────────────────────────
# Configuration
# ────────────────────────────────────────────────────────────

class MonthlyTargetsView(PeriodScopedMixin, ManagePermissionMixin, APIView):
    """
    GET /api/v1/periods/<id>/targets/
    PUT /api/v1/periods/<id>/targets/  {"targets": [{"category": ..., "target_value": "1000.00"}]}
    """

    def _list(self, period):
        qs = MonthlyTarget.objects.filter(period=period).select_related("category")
        return Response(MonthlyTargetSerializer(qs.order_by("category__name"), many=True).data)

    def get(self, request, period_id):
        return self._list(self.get_period())

    def put(self, request, period_id):
        period = self.get_period()
        items = validate_items(MonthlyTargetItemSerializer, request.data, "targets")
        try:
            services.upsert_monthly_targets(
                period, [(item["category"], item["target_value"]) for item in items]
            )
        except TargetsError as exc:
            return error_response(exc)
        return self._list(period)


class WeeklyDistributionView(PeriodScopedMixin, ManagePermissionMixin, APIView):
    """
    GET /api/v1/periods/<id>/weekly-distribution/
    PUT /api/v1/periods/<id>/weekly-distribution/  {"weeks": [{"week_index": 1, "percentage": "25.00"}]}
    """

    def _list(self, period):
        qs = WeeklyDistribution.objects.filter(period=period).select_related("week")
        return Response(WeeklyDistributionSerializer(qs, many=True).data)

    def get(self, request, period_id):
        return self._list(self.get_period())

    def put(self, request, period_id):
        period = self.get_period()
        items = validate_items(WeeklyDistributionItemSerializer, request.data, "weeks")
        try:
            services.upsert_weekly_distribution(
                period, [(item["week_index"], item["percentage"]) for item in items]
            )
        except TargetsError as exc:
            return error_response(exc)
        return self._list(period)


class RoleWeightsView(PeriodScopedMixin, ManagePermissionMixin, APIView):
    """
    GET /api/v1/periods/<id>/role-weights/<week_index>/
    PUT /api/v1/periods/<id>/role-weights/<week_index>/  {"weights": [{"role": "sales_junior", "weight_percentage": "60.00"}]}
    """

    def _list(self, period, week_index):
        qs = WeeklyRoleWeight.objects.filter(period=period, week__week_index=week_index).select_related("week")
        return Response(WeeklyRoleWeightSerializer(qs, many=True).data)

    def get(self, request, period_id, week_index):
        return self._list(self.get_period(), week_index)

    def put(self, request, period_id, week_index):
        period = self.get_period()
        items = validate_items(WeeklyRoleWeightItemSerializer, request.data, "weights")
        try:
            services.upsert_role_weights(
                period, week_index, [(item["role"], item["weight_percentage"]) for item in items]
            )
        except TargetsError as exc:
            return error_response(exc)
        return self._list(period, week_index)


class ValidateConfigView(PeriodScopedMixin, APIView):
    """
    GET /api/v1/periods/<id>/validate/?scope=all&strict=true
    Always 200; ``valid`` tells whether the rules hold, ``errors`` lists every violation.
    """
    permission_classes = [permissions.IsAuthenticated, IsShopMember]

    def get(self, request, period_id):
        scope = request.query_params.get("scope", "all")
        if scope not in SCOPES:
            return Response(
                {"code": "validation_error", "detail": f"Scope inconnu: {scope}.", "field": "scope"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        strict = _truthy(request.query_params.get("strict", "false"))
        week_index = request.query_params.get("week")
        errors = find_violations(
            self.get_period(),
            scope,
            strict=strict,
            week_index=int(week_index) if week_index and week_index.isdigit() else None,
        )
        return Response(
            {
                "scope": scope,
                "strict": strict,
                "valid": not errors,
                "errors": [exc.to_dict() for exc in errors],
            }
        )


class RecalcStateView(PeriodScopedMixin, APIView):
    permission_classes = [permissions.IsAuthenticated, IsShopMember]

    def get(self, request, period_id):
        return Response(RecalcFlagSerializer(recalc.get_state(self.get_period())).data)


# ────────────────────────────────────────────────────────────
# Recompute & derived targets
# ────────────────────────────────────────────────────────────

class RecomputeView(PeriodScopedMixin, ManagePermissionMixin, APIView):
    """
    POST /api/v1/periods/<id>/recompute/
    Body: {"async": true} queues the recompute instead of running it inline.
    """

    def post(self, request, period_id):
        period = self.get_period()
        if _truthy(request.data.get("async", False)):
            from targets.tasks import recompute_period_targets

            recompute_period_targets.delay(period_id=str(period.pk))
            logger.info("Recompute queued for period=%s by user=%s", period.pk, request.user.pk)
            return Response(
                {"detail": f"Recalcul lance pour la periode {period.label}."},
                status=status.HTTP_202_ACCEPTED,
            )
        try:
            result = services.recompute(period)
        except TargetsError as exc:
            return error_response(exc)
        return Response(
            {
                "period_id": str(result.period_id),
                "rows_written": result.rows_written,
                "computed_at": result.computed_at.isoformat(),
                "unallocated": [
                    {
                        "week_index": share.week_index,
                        "role": share.role,
                        "category_id": str(share.category_id),
                        "amount": str(share.amount),
                    }
                    for share in result.unallocated
                ],
            }
        )


class UserWeekTargetListView(PeriodScopedMixin, ListAPIView):
    """GET /api/v1/periods/<id>/user-week-targets/?user=<uuid>&week=<n>"""
    permission_classes = [permissions.IsAuthenticated, IsShopMember]
    serializer_class = UserWeekTargetSerializer
    pagination_class = StandardResultsSetPagination
    filterset_fields = ["user", "category"]
    ordering_fields = ["target_value", "user", "category"]

    def get_queryset(self):
        qs = (
            UserWeekTarget.objects.filter(period=self.get_period())
            .select_related("week")
            .order_by("week__week_index", "user_id", "category_id")
        )
        week = self.request.query_params.get("week")
        if week and week.isdigit():
            qs = qs.filter(week__week_index=int(week))
        return qs


# ────────────────────────────────────────────────────────────
# Leaderboard
# ────────────────────────────────────────────────────────────

class LeaderboardSnapshotListView(PeriodScopedMixin, APIView):
    """
    GET /api/v1/periods/<id>/leaderboard/
    Snapshots newest first, plus the rows of the current (latest) one.
    """
    permission_classes = [permissions.IsAuthenticated, IsShopMember]

    def get(self, request, period_id):
        period = self.get_period()
        current, rows = current_leaderboard(period)
        return Response(
            {
                "snapshots": LeaderboardSnapshotSerializer(list_snapshots(period), many=True).data,
                "current": LeaderboardSnapshotSerializer(current).data if current else None,
                "rows": LeaderboardRowSerializer(rows, many=True).data,
            }
        )


class ComputeSnapshotView(PeriodScopedMixin, ManagePermissionMixin, APIView):
    """
    POST /api/v1/periods/<id>/leaderboard/snapshots/
    Body: {"rules_version": "v1", "async": false}
    """

    def post(self, request, period_id):
        period = self.get_period()
        serializer = SnapshotRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        rules_version = serializer.validated_data.get("rules_version")

        if _truthy(request.data.get("async", False)):
            from targets.tasks import compute_period_leaderboard

            compute_period_leaderboard.delay(period_id=str(period.pk), rules_version=rules_version)
            logger.info("Leaderboard snapshot queued for period=%s by user=%s", period.pk, request.user.pk)
            return Response(
                {"detail": f"Classement en cours de calcul pour {period.label}."},
                status=status.HTTP_202_ACCEPTED,
            )
        try:
            snapshot = services.compute_snapshot(period, rules_version)
        except TargetsError as exc:
            return error_response(exc)
        data = LeaderboardSnapshotSerializer(snapshot).data
        data["rows"] = LeaderboardRowSerializer(services.get_leaderboard_rows(snapshot), many=True).data
        return Response(data, status=status.HTTP_201_CREATED)


class LeaderboardSnapshotDetailView(APIView):
    """GET /api/v1/leaderboard/snapshots/<id>/"""
    permission_classes = [permissions.IsAuthenticated, IsShopMember]

    def get_snapshot(self) -> LeaderboardSnapshot:
        if not hasattr(self, "_snapshot"):
            self._snapshot = (
                LeaderboardSnapshot.objects.select_related("period")
                .filter(pk=self.kwargs["snapshot_id"])
                .first()
            )
        if self._snapshot is None:
            raise NotFound("Classement introuvable.")
        return self._snapshot

    def get_shop_id(self):
        try:
            return self.get_snapshot().period.shop_id
        except NotFound:
            return None

    def get(self, request, snapshot_id):
        snapshot = self.get_snapshot()
        data = LeaderboardSnapshotSerializer(snapshot).data
        data["rows"] = LeaderboardRowSerializer(services.get_leaderboard_rows(snapshot), many=True).data
        return Response(data)


# ────────────────────────────────────────────────────────────
# Progress dashboards
# ────────────────────────────────────────────────────────────

class WeeklyProgressView(PeriodScopedMixin, APIView):
    permission_classes = [permissions.IsAuthenticated, IsShopMember]

    def get(self, request, period_id):
        weeks = progress.weekly_progress(self.get_period())
        return Response(WeekProgressSerializer(weeks, many=True).data)


class CategoryPerformanceView(PeriodScopedMixin, APIView):
    permission_classes = [permissions.IsAuthenticated, IsShopMember]

    def get(self, request, period_id):
        rows = progress.category_performance(self.get_period())
        return Response(CategoryPerformanceSerializer(rows, many=True).data)


class LeaderboardSnapshotExportView(LeaderboardSnapshotDetailView):
    """GET /api/v1/leaderboard/snapshots/<id>/export/?file=xlsx|csv"""

    def get(self, request, snapshot_id):
        from targets.export import export_snapshot_to_csv, export_snapshot_to_excel

        snapshot = self.get_snapshot()
        if request.query_params.get("file", "xlsx") == "csv":
            response = export_snapshot_to_csv(snapshot)
        else:
            response = export_snapshot_to_excel(snapshot)
        # Snapshots never change once written.
        patch_cache_control(response, private=True, max_age=settings.TARGETS_SNAPSHOT_EXPORT_MAX_AGE)
        return response

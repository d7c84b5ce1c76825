"""Main API URL router for /api/v1/."""
from django.urls import path
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from targets import views as target_views

app_name = 'api'
urlpatterns = [
    # Auth endpoints
    path('auth/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),

    # Periods & configuration
    path('shops/<uuid:shop_id>/periods/', target_views.ShopPeriodListView.as_view(), name='shop-periods'),
    path('periods/<uuid:period_id>/', target_views.PeriodDetailView.as_view(), name='period-detail'),
    path('periods/<uuid:period_id>/weeks/', target_views.PeriodWeeksView.as_view(), name='period-weeks'),
    path('periods/<uuid:period_id>/status/', target_views.PeriodStatusView.as_view(), name='period-status'),
    path('periods/<uuid:period_id>/targets/', target_views.MonthlyTargetsView.as_view(), name='period-targets'),
    path('periods/<uuid:period_id>/weekly-distribution/', target_views.WeeklyDistributionView.as_view(), name='period-weekly-distribution'),
    path('periods/<uuid:period_id>/role-weights/<int:week_index>/', target_views.RoleWeightsView.as_view(), name='period-role-weights'),
    path('periods/<uuid:period_id>/validate/', target_views.ValidateConfigView.as_view(), name='period-validate'),
    path('periods/<uuid:period_id>/recalc-state/', target_views.RecalcStateView.as_view(), name='period-recalc-state'),

    # Allocation
    path('periods/<uuid:period_id>/recompute/', target_views.RecomputeView.as_view(), name='period-recompute'),
    path('periods/<uuid:period_id>/user-week-targets/', target_views.UserWeekTargetListView.as_view(), name='period-user-week-targets'),

    # Leaderboard
    path('periods/<uuid:period_id>/leaderboard/', target_views.LeaderboardSnapshotListView.as_view(), name='period-leaderboard'),
    path('periods/<uuid:period_id>/leaderboard/snapshots/', target_views.ComputeSnapshotView.as_view(), name='period-leaderboard-compute'),
    path('leaderboard/snapshots/<uuid:snapshot_id>/', target_views.LeaderboardSnapshotDetailView.as_view(), name='leaderboard-snapshot'),
    path('leaderboard/snapshots/<uuid:snapshot_id>/export/', target_views.LeaderboardSnapshotExportView.as_view(), name='leaderboard-snapshot-export'),

    # Progress
    path('periods/<uuid:period_id>/weekly-progress/', target_views.WeeklyProgressView.as_view(), name='period-weekly-progress'),
    path('periods/<uuid:period_id>/category-performance/', target_views.CategoryPerformanceView.as_view(), name='period-category-performance'),
]

"""API URL configuration for AlgoTrack.

All API endpoints are prefixed with /api/v1/.
"""

from django.urls import include, path
from rest_framework.authtoken.views import obtain_auth_token
from rest_framework.routers import DefaultRouter

from accounts.api import UserProfileView
from approaches.api import ApproachViewSet
from dashboard.api import AdminOverviewView, AdminQuestionSummaryView
from progress.api import MeStatsView, ProgressMapView, SolvedQuestionView
from questions.api import (
    CategoryViewSet,
    GlobalCategoriesInfoView,
    QuestionDisplayOrderViewSet,
    QuestionViewSet,
)

# Catalogue resources (list/detail plus extra actions)
router = DefaultRouter()
router.register("categories", CategoryViewSet, basename="category")
router.register("questions", QuestionViewSet, basename="question")

urlpatterns = [
    # Authentication
    path("auth/token/", obtain_auth_token, name="auth-token"),
    path("api-auth/", include("rest_framework.urls")),
    # Account management
    path("account/profile/", UserProfileView.as_view(), name="account-profile"),
    # Catalogue
    path("", include(router.urls)),
    # Approaches, nested under questions and scoped to the current user
    path(
        "approaches/mine/",
        ApproachViewSet.as_view({"get": "mine"}),
        name="approaches-mine",
    ),
    path(
        "approaches/question/<int:question_id>/",
        ApproachViewSet.as_view({"get": "list", "post": "create"}),
        name="question-approaches-list",
    ),
    path(
        "approaches/question/<int:question_id>/usage/",
        ApproachViewSet.as_view({"get": "usage"}),
        name="question-approaches-usage",
    ),
    path(
        "approaches/question/<int:question_id>/<str:pk>/",
        ApproachViewSet.as_view({"get": "retrieve", "put": "update", "delete": "destroy"}),
        name="question-approaches-detail",
    ),
    # Progress
    path(
        "progress/<int:question_id>/",
        SolvedQuestionView.as_view(),
        name="question-progress",
    ),
    path("user/me/stats/", MeStatsView.as_view(), name="user-me-stats"),
    path("user/progress/map/", ProgressMapView.as_view(), name="user-progress-map"),
    path(
        "user/categories/info/",
        GlobalCategoriesInfoView.as_view(),
        name="user-categories-info",
    ),
    # Admin dashboard and display-order tools
    path("admin/overview/", AdminOverviewView.as_view(), name="admin-overview"),
    path(
        "admin/questions/summary/",
        AdminQuestionSummaryView.as_view(),
        name="admin-questions-summary",
    ),
    path(
        "admin/questions/display-order/batch/",
        QuestionDisplayOrderViewSet.as_view({"put": "batch"}),
        name="admin-questions-display-order-batch",
    ),
    path(
        "admin/questions/display-order/reset/",
        QuestionDisplayOrderViewSet.as_view({"post": "reset"}),
        name="admin-questions-display-order-reset",
    ),
    path(
        "admin/questions/by-category-level/",
        QuestionDisplayOrderViewSet.as_view({"get": "by_category_level"}),
        name="admin-questions-by-category-level",
    ),
    path(
        "admin/questions/<int:pk>/display-order/",
        QuestionDisplayOrderViewSet.as_view({"put": "update_one"}),
        name="admin-question-display-order",
    ),
]

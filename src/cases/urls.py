"""Routing for case and contribution endpoints."""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import CaseViewSet, ContributionViewSet

router = SimpleRouter(trailing_slash=False)
router.register(r"cases", CaseViewSet, basename="case")
router.register(r"contributions", ContributionViewSet, basename="contribution")

urlpatterns = [
    path("", include(router.urls)),
]

"""Root URL configuration for the donation platform."""
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView

urlpatterns = [
    path("api/schema", SpectacularAPIView.as_view(), name="schema"),
    path("api/auth/", include("authentication.urls")),
    path("api/admin/rbac/", include(("access_control.urls", "access_control"), namespace="rbac")),
    path(
        "api/admin/access-control/",
        include(("access_control.urls", "access_control"), namespace="access-control"),
    ),
    path("api/", include("cases.urls")),
    path("", include("marketing.urls")),
]

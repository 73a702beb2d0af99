"""Routing for the marketing pages and the contact endpoint."""

from django.urls import re_path

from .views import ContactView, HomeView, LandingView

urlpatterns = [
    re_path(r"^api/contact/?$", ContactView.as_view(), name="contact"),
    re_path(r"^(?P<locale>[a-z]{2})/?$", HomeView.as_view(), name="home"),
    re_path(r"^(?P<locale>[a-z]{2})/landing/?$", LandingView.as_view(), name="landing"),
]

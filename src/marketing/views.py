"""Public marketing surface: localized pages and the contact form endpoint."""

import logging
from decimal import Decimal
from typing import Any

from django.db.models import Count, Sum
from django.views.generic import TemplateView
from rest_framework import status

from cases.models import Case
from core.locales import fallback_locale
from core.response import BaseAPIView, api_response
from .serializers import ContactMessageSerializer

logger = logging.getLogger(__name__)


class ContactView(BaseAPIView):
    """Store a contact-form submission; public and rate limited by path."""

    authentication_classes: list[Any] = []
    permission_classes: list[Any] = []

    def post(self, request):
        serializer = ContactMessageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        contact = serializer.save(
            locale=serializer.validated_data.get("locale") or fallback_locale(request),
            correlation_id=getattr(request, "correlation_id", ""),
        )
        logger.info("Contact message %s received", contact.pk)
        return api_response({"id": contact.pk}, status=status.HTTP_201_CREATED)


class LocalizedPageView(TemplateView):
    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context["locale"] = getattr(self.request, "locale", kwargs.get("locale"))
        context["text_direction"] = "rtl" if context["locale"] == "ar" else "ltr"
        return context


class HomeView(LocalizedPageView):
    template_name = "marketing/home.html"


class LandingView(LocalizedPageView):
    """Landing page with headline impact figures from published cases."""

    template_name = "marketing/landing.html"

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        stats = Case.objects.exclude(status=Case.Status.DRAFT).aggregate(
            cases=Count("id"), raised=Sum("current_amount")
        )
        context["case_count"] = stats["cases"]
        context["total_raised"] = stats["raised"] or Decimal("0")
        return context


__all__ = ["ContactView", "HomeView", "LandingView"]

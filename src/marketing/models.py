"""Messages submitted through the public contact form."""

from django.db import models


class ContactMessage(models.Model):
    name = models.CharField(max_length=120)
    email = models.EmailField(max_length=255)
    message = models.TextField(max_length=5000)
    locale = models.CharField(max_length=8, blank=True)
    correlation_id = models.CharField(max_length=64, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.name} <{self.email}>"


__all__ = ["ContactMessage"]

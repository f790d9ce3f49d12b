import os

from django.conf import settings
from django.db import models


class Document(models.Model):
    TYPE_CHOICES = [
        ('evidence', 'Evidence'),
        ('contract', 'Contract'),
        ('notice', 'Notice'),
        ('correspondence', 'Correspondence'),
        ('other', 'Other'),
    ]

    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='documents'
    )
    # Optional: documents may belong to a case or just to the uploader
    case = models.ForeignKey(
        'cases.Case',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='documents'
    )
    title = models.CharField(max_length=255)
    file = models.FileField(upload_to='documents/%Y/%m/')
    mime_type = models.CharField(max_length=100, blank=True)
    size = models.PositiveIntegerField(default=0)
    document_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='other')
    description = models.TextField(max_length=500, blank=True)
    uploaded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-uploaded_at']

    @property
    def filename(self):
        return os.path.basename(self.file.name)

    def __str__(self):
        return f"{self.title} - {self.uploaded_by.username}"

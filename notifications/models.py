from django.db import models
from django.conf import settings


class Notification(models.Model):
    KIND_CHOICES = [
        ('general', 'General'),
        ('case_request', 'Case request'),
        ('case_offer', 'Case offer'),
        ('request_rejected', 'Request rejected'),
        ('assignment', 'Assignment'),
        ('case_status', 'Case status'),
        ('direct_connection', 'Direct connection'),
        ('verification', 'Verification'),
        ('call', 'Call'),
        ('consultation', 'Consultation'),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='notifications')
    kind = models.CharField(max_length=30, choices=KIND_CHOICES, default='general')
    message = models.TextField()
    # Extra payload for the client, e.g. {"caseId": 3, "chatId": "query_3"}
    data = models.JSONField(blank=True, default=dict)
    created_at = models.DateTimeField(auto_now_add=True)
    is_read = models.BooleanField(default=False)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Notification for {self.user.username}: {self.message[:30]}"


class ActivityLog(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True)
    action = models.CharField(max_length=255)
    timestamp = models.DateTimeField(auto_now_add=True)
    details = models.JSONField(blank=True, null=True)

    class Meta:
        ordering = ["-timestamp"]

    def __str__(self):
        who = self.user.username if self.user_id else "system"
        return f"{who}: {self.action}"

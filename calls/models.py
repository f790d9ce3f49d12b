import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone

User = settings.AUTH_USER_MODEL


class Call(models.Model):
    """
    Record of a voice or video call placed inside a chat room.

    Media and signalling happen in the browser; this row only tracks who
    called whom, how it ended and how long the parties talked.
    """

    TYPE_VOICE = 'voice'
    TYPE_VIDEO = 'video'

    TYPE_CHOICES = [
        (TYPE_VOICE, 'Voice'),
        (TYPE_VIDEO, 'Video'),
    ]

    STATUS_INITIATED = 'initiated'
    STATUS_RINGING = 'ringing'
    STATUS_ANSWERED = 'answered'
    STATUS_ENDED = 'ended'
    STATUS_MISSED = 'missed'
    STATUS_REJECTED = 'rejected'

    STATUS_CHOICES = [
        (STATUS_INITIATED, 'Initiated'),
        (STATUS_RINGING, 'Ringing'),
        (STATUS_ANSWERED, 'Answered'),
        (STATUS_ENDED, 'Ended'),
        (STATUS_MISSED, 'Missed'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    ACTIVE_STATUSES = (STATUS_INITIATED, STATUS_RINGING, STATUS_ANSWERED)
    RINGING_STATUSES = (STATUS_INITIATED, STATUS_RINGING)

    END_REASON_CHOICES = [
        ('completed', 'Completed'),
        ('missed', 'Missed'),
        ('rejected', 'Rejected'),
        ('failed', 'Failed'),
        ('timeout', 'Timeout'),
    ]

    call_id = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    room = models.ForeignKey('chat.ChatRoom', on_delete=models.CASCADE, related_name='calls')
    initiator = models.ForeignKey(User, on_delete=models.CASCADE, related_name='initiated_calls')
    participants = models.ManyToManyField(User, through='CallParticipant', related_name='calls')
    call_type = models.CharField(max_length=10, choices=TYPE_CHOICES)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_INITIATED)
    started_at = models.DateTimeField(default=timezone.now)
    answered_at = models.DateTimeField(null=True, blank=True)
    ended_at = models.DateTimeField(null=True, blank=True)
    # seconds of talk time, counted from the answer
    duration = models.PositiveIntegerField(default=0)
    end_reason = models.CharField(max_length=10, choices=END_REASON_CHOICES, blank=True)
    user_agent = models.CharField(max_length=255, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)

    class Meta:
        ordering = ['-started_at']
        indexes = [models.Index(fields=['status', 'started_at'], name='call_status_started_idx')]

    @property
    def is_active(self):
        return self.status in self.ACTIVE_STATUSES

    def has_participant(self, user):
        return self.memberships.filter(user=user).exists()

    def finish(self, status, reason, at=None):
        self.status = status
        self.end_reason = reason
        self.ended_at = at or timezone.now()
        if self.answered_at:
            self.duration = max(0, int((self.ended_at - self.answered_at).total_seconds()))

    def __str__(self):
        return f"{self.call_type} call {self.call_id} ({self.status})"


class CallParticipant(models.Model):
    call = models.ForeignKey(Call, on_delete=models.CASCADE, related_name='memberships')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='call_memberships')
    role = models.CharField(max_length=20)
    joined_at = models.DateTimeField(null=True, blank=True)
    left_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        unique_together = ('call', 'user')

    def __str__(self):
        return f"{self.user} on {self.call.call_id}"

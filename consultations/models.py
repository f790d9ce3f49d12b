from datetime import timedelta

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

User = settings.AUTH_USER_MODEL


class Consultation(models.Model):
    """A citizen booking time with a lawyer, optionally about one of their cases."""

    TYPE_CHOICES = [
        ('video', 'Video'),
        ('audio', 'Audio'),
        ('in-person', 'In person'),
    ]

    STATUS_REQUESTED = 'requested'
    STATUS_SCHEDULED = 'scheduled'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_IN_PROGRESS = 'in-progress'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_RESCHEDULED = 'rescheduled'

    STATUS_CHOICES = [
        (STATUS_REQUESTED, 'Requested'),
        (STATUS_SCHEDULED, 'Scheduled'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_IN_PROGRESS, 'In progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
        (STATUS_RESCHEDULED, 'Rescheduled'),
    ]

    # statuses a lawyer may move a booking to
    LAWYER_STATUSES = (STATUS_SCHEDULED, STATUS_CONFIRMED, STATUS_COMPLETED, STATUS_CANCELLED)
    CANCELLABLE_STATUSES = (STATUS_REQUESTED, STATUS_SCHEDULED, STATUS_CONFIRMED)
    # bookings that occupy the lawyer's calendar
    BLOCKING_STATUSES = (STATUS_SCHEDULED, STATUS_CONFIRMED, STATUS_IN_PROGRESS)
    FINAL_STATUSES = (STATUS_COMPLETED, STATUS_CANCELLED)

    title = models.CharField(max_length=100)
    description = models.TextField(max_length=500, blank=True)
    citizen = models.ForeignKey(User, on_delete=models.CASCADE, related_name='consultations_booked')
    lawyer = models.ForeignKey(User, on_delete=models.CASCADE, related_name='consultations_given')
    case = models.ForeignKey(
        'cases.Case',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='consultations'
    )
    consultation_type = models.CharField(max_length=10, choices=TYPE_CHOICES, default='video')
    status = models.CharField(max_length=15, choices=STATUS_CHOICES, default=STATUS_REQUESTED)
    scheduled_at = models.DateTimeField()
    duration_minutes = models.PositiveSmallIntegerField(
        default=30,
        validators=[MinValueValidator(15), MaxValueValidator(180)],
    )
    fee = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    currency = models.CharField(max_length=3, default='INR')
    meeting_link = models.URLField(blank=True)
    lawyer_notes = models.TextField(max_length=1000, blank=True)
    cancelled_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    cancellation_reason = models.CharField(max_length=500, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-scheduled_at']
        indexes = [models.Index(fields=['lawyer', 'scheduled_at'], name='consult_lawyer_time_idx')]

    def is_party(self, user):
        return user.pk in (self.citizen_id, self.lawyer_id)

    def can_be_cancelled(self, now):
        notice = timedelta(hours=settings.CONSULTATION_CANCEL_NOTICE_HOURS)
        return self.status in self.CANCELLABLE_STATUSES and self.scheduled_at - now >= notice

    def generate_meeting_link(self):
        if self.consultation_type == 'video' and not self.meeting_link:
            self.meeting_link = f"{settings.FRONTEND_URL.rstrip('/')}/consultations/{self.pk}/room"

    def __str__(self):
        return f"{self.title} at {self.scheduled_at:%Y-%m-%d %H:%M} ({self.status})"

import uuid

from django.conf import settings
from django.db import models
from django.db.models import Q


class Case(models.Model):
    """A citizen's legal query or dispute, waiting for (or handled by) one lawyer."""

    TYPE_QUERY = 'query'
    TYPE_DISPUTE = 'dispute'

    TYPE_CHOICES = [
        (TYPE_QUERY, 'Query'),
        (TYPE_DISPUTE, 'Dispute'),
    ]

    CATEGORY_CHOICES = [
        ('civil', 'Civil'),
        ('criminal', 'Criminal'),
        ('family', 'Family'),
        ('property', 'Property'),
        ('corporate', 'Corporate'),
        ('tax', 'Tax'),
        ('labor', 'Labor'),
        ('contract', 'Contract'),
        ('employment', 'Employment'),
        ('business', 'Business'),
        ('consumer', 'Consumer'),
        ('landlord-tenant', 'Landlord-Tenant'),
        ('other', 'Other'),
    ]

    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
        ('urgent', 'Urgent'),
    ]

    STATUS_PENDING = 'pending'
    STATUS_OPEN = 'open'
    STATUS_ASSIGNED = 'assigned'
    STATUS_IN_PROGRESS = 'in-progress'
    STATUS_MEDIATION = 'mediation'
    STATUS_ARBITRATION = 'arbitration'
    STATUS_RESOLVED = 'resolved'
    STATUS_CLOSED = 'closed'
    STATUS_CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_OPEN, 'Open'),
        (STATUS_ASSIGNED, 'Assigned'),
        (STATUS_IN_PROGRESS, 'In progress'),
        (STATUS_MEDIATION, 'Mediation'),
        (STATUS_ARBITRATION, 'Arbitration'),
        (STATUS_RESOLVED, 'Resolved'),
        (STATUS_CLOSED, 'Closed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    # Only these accept new requests/offers.
    OPEN_STATUSES = (STATUS_PENDING, STATUS_OPEN)

    case_type = models.CharField(max_length=10, choices=TYPE_CHOICES)
    title = models.CharField(max_length=100)
    description = models.TextField(max_length=2000)
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='cases'
    )
    assigned_lawyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_cases'
    )
    # Disputes only
    dispute_value = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)

    # Set together with assigned_lawyer, never changed afterwards.
    chat_id = models.CharField(max_length=64, null=True, blank=True, unique=True)

    resolution_summary = models.TextField(blank=True)
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='resolved_cases'
    )
    resolved_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['case_type', 'status'], name='case_type_status_idx'),
        ]

    @property
    def is_open(self):
        return self.status in self.OPEN_STATUSES and self.assigned_lawyer_id is None

    @property
    def chat_room(self):
        return {"chatId": self.chat_id} if self.chat_id else None

    def is_participant(self, user):
        return user.pk in (self.created_by_id, self.assigned_lawyer_id)

    def __str__(self):
        return f"{self.case_type} #{self.pk}: {self.title} ({self.status})"


class MatchEntry(models.Model):
    """
    One proposal to pair a lawyer with a case.

    kind='request' : citizen asked this lawyer to take the case (lawyer answers)
    kind='offer'   : lawyer offered to take the case (citizen answers)

    Entries are never deleted; they only move from pending to accepted or rejected.
    """

    KIND_REQUEST = 'request'
    KIND_OFFER = 'offer'

    KIND_CHOICES = [
        (KIND_REQUEST, 'Citizen request'),
        (KIND_OFFER, 'Lawyer offer'),
    ]

    STATUS_PENDING = 'pending'
    STATUS_ACCEPTED = 'accepted'
    STATUS_REJECTED = 'rejected'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACCEPTED, 'Accepted'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    case = models.ForeignKey(Case, on_delete=models.CASCADE, related_name='entries')
    kind = models.CharField(max_length=10, choices=KIND_CHOICES)
    lawyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='match_entries'
    )
    message = models.TextField(blank=True)
    proposed_fee = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    estimated_duration = models.CharField(max_length=100, blank=True)

    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING)
    response = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    responded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['case', 'lawyer', 'kind'],
                condition=~Q(status='rejected'),
                name='unique_active_entry_per_lawyer',
            ),
            models.UniqueConstraint(
                fields=['case'],
                condition=Q(status='accepted'),
                name='single_accepted_entry_per_case',
            ),
        ]

    @property
    def responder_id(self):
        """Who may accept or reject this entry."""
        if self.kind == self.KIND_OFFER:
            return self.case.created_by_id
        return self.lawyer_id

    @property
    def sender_id(self):
        if self.kind == self.KIND_OFFER:
            return self.lawyer_id
        return self.case.created_by_id

    def __str__(self):
        return f"{self.kind} {self.lawyer_id} -> case {self.case_id} ({self.status})"


class CaseEvent(models.Model):
    """Timeline entry for a case."""

    ACTION_CHOICES = [
        ('created', 'Created'),
        ('request_sent', 'Request sent'),
        ('offer_sent', 'Offer sent'),
        ('entry_rejected', 'Entry rejected'),
        ('assigned', 'Assigned'),
        ('status_changed', 'Status changed'),
    ]

    case = models.ForeignKey(Case, on_delete=models.CASCADE, related_name='timeline')
    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    description = models.CharField(max_length=255)
    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at', 'id']

    def __str__(self):
        return f"{self.case_id}: {self.action}"

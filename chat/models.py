from django.conf import settings
from django.db import models

User = settings.AUTH_USER_MODEL


class ChatRoom(models.Model):
    """
    Messaging channel shared by a citizen and a lawyer.

    Case rooms use chat_id "<case_type>_<case_id>"; direct rooms use
    "direct_<lower user id>_<higher user id>".
    """

    TYPE_DIRECT = 'direct'
    TYPE_QUERY = 'query'
    TYPE_DISPUTE = 'dispute'

    TYPE_CHOICES = [
        (TYPE_DIRECT, 'Direct'),
        (TYPE_QUERY, 'Query'),
        (TYPE_DISPUTE, 'Dispute'),
    ]

    STATUS_PENDING = 'pending'
    STATUS_ACTIVE = 'active'
    STATUS_CLOSED = 'closed'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACTIVE, 'Active'),
        (STATUS_CLOSED, 'Closed'),
    ]

    chat_id = models.CharField(max_length=64, unique=True)
    chat_type = models.CharField(max_length=10, choices=TYPE_CHOICES)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    case = models.OneToOneField(
        'cases.Case',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='chat'
    )
    participants = models.ManyToManyField(User, through='ChatParticipant', related_name='chat_rooms')
    created_at = models.DateTimeField(auto_now_add=True)
    last_message_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-last_message_at', '-created_at']

    def has_participant(self, user):
        return self.memberships.filter(user=user).exists()

    def __str__(self):
        return f"{self.chat_id} ({self.status})"


class ChatParticipant(models.Model):
    ROLE_CHOICES = [
        ('citizen', 'Citizen'),
        ('lawyer', 'Lawyer'),
        ('admin', 'Admin'),
    ]

    room = models.ForeignKey(ChatRoom, on_delete=models.CASCADE, related_name='memberships')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='chat_memberships')
    role = models.CharField(max_length=10, choices=ROLE_CHOICES)
    joined_at = models.DateTimeField(auto_now_add=True)
    last_read_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        unique_together = ('room', 'user')

    def __str__(self):
        return f"{self.user} in {self.room.chat_id}"


class Message(models.Model):
    TYPE_CHOICES = [
        ('text', 'Text'),
        ('system', 'System'),
    ]

    room = models.ForeignKey(ChatRoom, on_delete=models.CASCADE, related_name='messages')
    sender = models.ForeignKey(User, on_delete=models.CASCADE, related_name='chat_messages')
    content = models.TextField(max_length=1000)
    message_type = models.CharField(max_length=10, choices=TYPE_CHOICES, default='text')
    created_at = models.DateTimeField(auto_now_add=True)
    is_deleted = models.BooleanField(default=False)

    class Meta:
        ordering = ['created_at', 'id']

    def __str__(self):
        return f"{self.sender}: {self.content[:30]}"


class DirectConnection(models.Model):
    """A citizen asking a lawyer for a one-to-one chat outside any case."""

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('accepted', 'Accepted'),
        ('rejected', 'Rejected'),
    ]

    citizen = models.ForeignKey(User, on_delete=models.CASCADE, related_name='direct_requests_sent')
    lawyer = models.ForeignKey(User, on_delete=models.CASCADE, related_name='direct_requests_received')
    message = models.TextField(blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='pending')
    room = models.OneToOneField(ChatRoom, on_delete=models.SET_NULL, null=True, blank=True, related_name='connection')
    created_at = models.DateTimeField(auto_now_add=True)
    responded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['citizen', 'lawyer'],
                condition=models.Q(status='pending'),
                name='unique_pending_direct_connection',
            ),
        ]

    def __str__(self):
        return f"{self.citizen} -> {self.lawyer} ({self.status})"

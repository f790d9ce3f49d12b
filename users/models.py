from django.contrib.auth.models import AbstractUser
from django.core.validators import MaxValueValidator, RegexValidator
from django.db import models


def default_specialization():
    return ["General Practice"]


class User(AbstractUser):
    ROLE_CITIZEN = 'citizen'
    ROLE_LAWYER = 'lawyer'
    ROLE_LAW_STUDENT = 'law_student'
    ROLE_ADMIN = 'admin'

    ROLE_CHOICES = [
        (ROLE_CITIZEN, 'Citizen'),
        (ROLE_LAWYER, 'Lawyer'),
        (ROLE_LAW_STUDENT, 'Law Student'),
        (ROLE_ADMIN, 'Admin'),
    ]

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_CITIZEN)
    name = models.CharField(max_length=50, blank=True)
    phone = models.CharField(
        max_length=10,
        blank=True,
        validators=[RegexValidator(r'^[0-9]{10}$', "Please provide a valid 10-digit phone number")],
    )
    # Lawyers start unverified until an admin approves them.
    is_verified = models.BooleanField(default=False)

    def save(self, *args, **kwargs):
        if self._state.adding and self.role in (self.ROLE_CITIZEN, self.ROLE_LAW_STUDENT):
            self.is_verified = True
        super().save(*args, **kwargs)

    @property
    def is_lawyer(self):
        return self.role == self.ROLE_LAWYER

    @property
    def verification_status(self):
        details = getattr(self, "lawyer_details", None) if self.is_lawyer else None
        if details is None:
            return LawyerProfile.STATUS_PENDING
        return details.verification_status or LawyerProfile.STATUS_PENDING

    def __str__(self):
        return f"{self.username} ({self.role})"

# Roles:
    # Citizen → creates queries/disputes and requests lawyers for them.
    # Lawyer → offers help on open cases once verified by an admin.
    # Law student → read-only participant.
    # Admin → verifies lawyers and manages accounts.


class LawyerProfile(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_VERIFIED = 'verified'
    STATUS_REJECTED = 'rejected'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_VERIFIED, 'Verified'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='lawyer_details')
    bar_registration_number = models.CharField(max_length=50, blank=True)
    specialization = models.JSONField(default=default_specialization, blank=True)
    experience = models.PositiveSmallIntegerField(default=0, validators=[MaxValueValidator(50)])
    education = models.CharField(max_length=255, default='Law Graduate', blank=True)
    verification_status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING)
    verification_notes = models.CharField(max_length=500, blank=True)
    consultation_fee = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    bio = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.user.username} - {self.bar_registration_number or 'no bar number'} ({self.verification_status})"

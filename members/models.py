from django.conf import settings
from django.db import models


class MembershipStatus(models.TextChoices):
    ACTIVE = 'Active', 'Active'
    EXPIRED = 'Expired', 'Expired'
    PENDING = 'Pending', 'Pending'
    INACTIVE = 'Inactive', 'Inactive'


class Member(models.Model):
    # 1. Basic Info
    full_name = models.CharField(max_length=100)
    email = models.EmailField(blank=True, null=True, db_index=True)
    phone_number = models.CharField(max_length=15, blank=True, db_index=True)

    # 2. Tenancy
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, null=True, blank=True, related_name='members',
        help_text="Gym owner this member belongs to."
    )
    legacy_gym = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, null=True, blank=True, related_name='+',
        help_text="Owner reference carried over from older records without created_by."
    )

    # 3. Membership window (a projection of the latest payment; status is only a hint)
    plan = models.ForeignKey('plans.GymOwnerPlan', on_delete=models.SET_NULL, null=True, blank=True, related_name='members')
    plan_type = models.CharField(max_length=100, blank=True)
    membership_type = models.CharField(max_length=100, blank=True)
    membership_start_date = models.DateField(blank=True, null=True)
    membership_end_date = models.DateField(blank=True, null=True)
    membership_duration = models.CharField(max_length=10, blank=True, help_text="Months, stored as text.")
    membership_status = models.CharField(max_length=20, blank=True, default=MembershipStatus.PENDING)
    payment_mode = models.CharField(max_length=30, blank=True)
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    # 4. Training
    assigned_trainer = models.ForeignKey(
        'management.Trainer', on_delete=models.SET_NULL, null=True, blank=True, related_name='members'
    )

    # 5. Registration
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    is_active = models.BooleanField(default=True)

    @property
    def owner_id(self):
        return self.created_by_id or self.legacy_gym_id

    def __str__(self):
        return f"{self.full_name} ({self.pk})"

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Member'
        verbose_name_plural = 'Members'
        indexes = [
            models.Index(fields=['created_by', 'membership_end_date']),
        ]


class MemberAgreement(models.Model):
    """What was agreed when the owner onboarded a member. Written once, never edited."""
    PAYMENT_METHOD_CHOICES = [
        ('cash', 'Cash'),
        ('online', 'Online'),
    ]

    member = models.ForeignKey(Member, on_delete=models.SET_NULL, null=True, related_name='agreements')
    gym_owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='member_agreements')

    payment_method = models.CharField(max_length=10, choices=PAYMENT_METHOD_CHOICES)
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    plan = models.ForeignKey('plans.GymOwnerPlan', on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    plan_type = models.CharField(max_length=100, blank=True)
    duration_months = models.PositiveIntegerField(null=True, blank=True)
    membership_start_date = models.DateField(null=True, blank=True)
    membership_end_date = models.DateField(null=True, blank=True)
    assigned_trainer = models.ForeignKey('management.Trainer', on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    notes = models.TextField(blank=True)

    member_snapshot = models.JSONField(default=dict)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"Agreement: {self.member_snapshot.get('name', 'Unknown')} on {self.created_at:%Y-%m-%d}"

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['gym_owner', 'member', '-created_at']),
        ]

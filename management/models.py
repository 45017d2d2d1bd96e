from django.contrib.auth.models import AbstractUser
from django.core.validators import MinValueValidator, RegexValidator
from django.db import models
import uuid


class User(AbstractUser):
    """Account for every actor that can log in. Gym owners are the tenancy root."""
    SUPER_ADMIN = 'super_admin'
    GYM_OWNER = 'gym_owner'
    TRAINER = 'trainer'
    ROLE_CHOICES = [
        (SUPER_ADMIN, 'Super Admin'),
        (GYM_OWNER, 'Gym Owner'),
        (TRAINER, 'Trainer'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True)
    phone_regex = RegexValidator(regex=r'^\+?1?\d{9,15}$', message="Phone number must be entered in the format: '+999999999'. Up to 15 digits allowed.")
    phone = models.CharField(validators=[phone_regex], max_length=17, blank=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES)
    gym_name = models.CharField(max_length=150, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['username', 'role']

    @property
    def display_name(self):
        return self.get_full_name() or self.username

    @property
    def is_gym_owner(self):
        return self.role == self.GYM_OWNER

    def __str__(self):
        return f"{self.email} - {self.role}"


class Trainer(models.Model):
    """Trainer profile; billed to members per month through ``monthly_fee``."""
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='trainer_profile')
    gym_owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name='trainers')
    specialization = models.CharField(max_length=100, choices=[
        ('personal', 'Personal Training'),
        ('group', 'Group Fitness'),
        ('yoga', 'Yoga'),
        ('strength', 'Strength Training'),
        ('nutrition', 'Nutrition Counseling'),
    ], default='personal')
    monthly_fee = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True,
        validators=[MinValueValidator(0)],
        help_text="Charged per member per month. Empty or zero means not configured.",
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    @property
    def name(self):
        return self.user.display_name

    def __str__(self):
        return f"Trainer: {self.user.email}"


class CascadeDeleteJob(models.Model):
    """Progress record for deleting a gym owner together with everything they own."""
    PENDING = 'pending'
    RUNNING = 'running'
    FAILED = 'failed'
    COMPLETED = 'completed'
    STATUS_CHOICES = [
        (PENDING, 'Pending'),
        (RUNNING, 'Running'),
        (FAILED, 'Failed'),
        (COMPLETED, 'Completed'),
    ]

    # Plain value rather than a FK: the owner row is the last thing deleted.
    gym_owner_id = models.UUIDField(db_index=True)
    gym_owner_email = models.EmailField(blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=PENDING)
    used_transaction = models.BooleanField(default=False)
    completed_steps = models.JSONField(default=list)
    deleted_counts = models.JSONField(default=dict)
    last_error = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Cascade delete of {self.gym_owner_email or self.gym_owner_id} ({self.status})"

    class Meta:
        ordering = ['-created_at']

from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Workshop staff account; the role drives every access decision"""
    ROLE_OWNER = 'owner'
    ROLE_ADMIN = 'lv2'
    ROLE_WORKER = 'lv1'

    ROLE_CHOICES = [
        (ROLE_OWNER, 'Owner'),
        (ROLE_ADMIN, 'Admin'),
        (ROLE_WORKER, 'Worker'),
    ]

    STATUS_CHOICES = [
        ('active', 'Active'),
        ('disabled', 'Disabled'),
    ]

    email = models.EmailField(unique=True)
    name = models.CharField(max_length=200, blank=True)
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_WORKER, db_index=True)
    custom_id = models.CharField(max_length=20, unique=True, null=True, blank=True, help_text="Human-readable ID, e.g. U_W03")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    phone = models.CharField(max_length=20, blank=True, null=True)
    created_by = models.CharField(max_length=150, blank=True, help_text="'self' for sign-ups, otherwise the creating owner")
    fcm_tokens = models.JSONField(default=list, blank=True)
    last_token_update = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['username']

    def save(self, *args, **kwargs):
        # status is the source of truth for whether the account may log in
        self.is_active = self.status == 'active'
        super().save(*args, **kwargs)

    @property
    def display_name(self):
        return self.name or self.get_full_name() or self.email

    def __str__(self):
        return f"{self.display_name} ({self.custom_id or self.role})"

    class Meta:
        db_table = 'users'


class Setting(models.Model):
    """System settings"""
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    description = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.key

    class Meta:
        db_table = 'settings'


class AuditLog(models.Model):
    """Activity log of every change made in the workshop"""
    ACTION_CHOICES = [
        ('add_product', 'Add Product'),
        ('update_product', 'Update Product'),
        ('delete_product', 'Delete Product'),
        ('create_job_card', 'Create Job Card'),
        ('update_job_card', 'Update Job Card'),
        ('create_invoice', 'Create Invoice'),
        ('add_user', 'Add User'),
        ('update_user', 'Update User'),
        ('delete_user', 'Delete User'),
        ('login', 'Login'),
        ('logout', 'Logout'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., product name, vehicle number)")
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Reference identifier (e.g., ENG0001, JOB-20250101-001)")
    details = models.TextField(blank=True)
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    @property
    def action_label(self):
        return dict(self.ACTION_CHOICES).get(self.action, self.action)

    @property
    def action_color(self):
        if 'add' in self.action or 'create' in self.action:
            return 'green'
        if 'update' in self.action:
            return 'blue'
        if 'delete' in self.action:
            return 'red'
        return 'gray'

    def __str__(self):
        return f"{self.action} {self.model_name}#{self.object_id}"

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='audit_logs_created_c3f1a2_idx'),
            models.Index(fields=['action'], name='audit_logs_action_8b2d4e_idx'),
            models.Index(fields=['model_name'], name='audit_logs_model_n_5e7a91_idx'),
            models.Index(fields=['object_reference'], name='audit_logs_object__d40c6b_idx'),
        ]

from django.db import models
from django.contrib.auth.models import AbstractUser


class Member(AbstractUser):
    """Carpool volunteer with an organisational role"""
    ROLE_CHOICES = [
        ('member', 'Member'),
        ('deputy', 'Deputy Director'),
        ('director', 'Director'),
        ('admin', 'Admin'),
    ]

    DISPATCH_ROLES = ('deputy', 'director', 'admin')
    DIRECTOR_ROLES = ('director', 'admin')

    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default='member')
    phone_number = models.CharField(max_length=20, blank=True)
    # Free text as entered by the member; normalized by services.eligibility
    gender = models.CharField(max_length=30, blank=True)
    pronouns = models.CharField(max_length=30, blank=True)

    class Meta:
        db_table = 'members'

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"

    @property
    def can_dispatch(self):
        return self.role in self.DISPATCH_ROLES

    @property
    def is_director(self):
        return self.role in self.DIRECTOR_ROLES

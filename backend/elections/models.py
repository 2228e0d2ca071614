from __future__ import annotations

from django.db import models
from django.utils import timezone


class Election(models.Model):
    class Type(models.TextChoices):
        FEDERAL = "federal", "Fédérale"
        SECTION = "section", "Section"
        OTHER = "other", "Autre"

    class Status(models.TextChoices):
        DRAFT = "draft", "Brouillon"
        OPEN = "open", "Ouverte"
        CLOSED = "closed", "Clôturée"
        PUBLISHED = "published", "Publiée"
        ARCHIVED = "archived", "Archivée"

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    type = models.CharField(max_length=20, choices=Type.choices, default=Type.FEDERAL)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)
    start_at = models.DateTimeField(null=True, blank=True)
    end_at = models.DateTimeField(null=True, blank=True)
    # Days of seniority required to vote; 0 disables the check.
    min_seniority = models.IntegerField(default=0)
    # Empty means every section may vote.
    allowed_sections = models.ManyToManyField("members.Section", blank=True, related_name="elections")
    voter_conditions = models.ManyToManyField("conditions.Condition", blank=True, related_name="voter_elections")
    candidate_conditions = models.ManyToManyField(
        "conditions.Condition",
        blank=True,
        related_name="candidate_elections",
    )
    total_eligible_voters = models.PositiveIntegerField(default=0)
    total_votes_cast = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:
        return self.title

    def is_open(self) -> bool:
        now = timezone.now()
        if self.status != self.Status.OPEN:
            return False
        if self.start_at and now < self.start_at:
            return False
        if self.end_at and now > self.end_at:
            return False
        return True

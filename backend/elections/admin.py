from django.contrib import admin

from .models import Election


@admin.register(Election)
class ElectionAdmin(admin.ModelAdmin):
    list_display = ("title", "type", "status", "start_at", "end_at", "min_seniority")
    list_filter = ("type", "status")
    search_fields = ("title", "description")
    filter_horizontal = ("allowed_sections", "voter_conditions", "candidate_conditions")
    readonly_fields = ("total_eligible_voters", "total_votes_cast", "created_at", "updated_at")

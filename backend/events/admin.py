# events/admin.py
"""
Django admin configuration for event store models.

Events are read-only in admin (they're immutable).
Bookmarks can be managed for debugging projections.
"""

import json

from django.contrib import admin
from django.utils.html import format_html

from .models import BusinessEvent, EventBookmark


@admin.register(BusinessEvent)
class BusinessEventAdmin(admin.ModelAdmin):
    """
    Admin interface for BusinessEvents.
    Read-only since events are immutable.
    """

    list_display = [
        "stream_sequence", "event_type", "aggregate_display",
        "caused_by_user", "origin", "occurred_at",
    ]
    list_filter = ["event_type", "aggregate_type", "origin", "occurred_at"]
    search_fields = ["event_type", "aggregate_id", "idempotency_key"]
    date_hierarchy = "occurred_at"
    list_select_related = ["caused_by_user"]
    ordering = ["-stream_sequence"]

    readonly_fields = [
        "id", "event_type", "aggregate_type", "aggregate_id", "sequence",
        "stream_sequence", "idempotency_key", "data_formatted",
        "metadata_formatted", "schema_version", "caused_by_user",
        "caused_by_event", "origin", "occurred_at", "recorded_at",
    ]
    exclude = ["data", "metadata"]

    def aggregate_display(self, obj):
        """Display aggregate type and ID together."""
        return f"{obj.aggregate_type}#{obj.aggregate_id}"
    aggregate_display.short_description = "Aggregate"

    def data_formatted(self, obj):
        return format_html("<pre>{}</pre>", json.dumps(obj.data, indent=2, ensure_ascii=False))
    data_formatted.short_description = "Data"

    def metadata_formatted(self, obj):
        return format_html("<pre>{}</pre>", json.dumps(obj.metadata, indent=2, ensure_ascii=False))
    metadata_formatted.short_description = "Metadata"

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(EventBookmark)
class EventBookmarkAdmin(admin.ModelAdmin):
    list_display = [
        "consumer_name", "last_event", "last_processed_at",
        "is_paused", "error_count",
    ]
    list_filter = ["is_paused"]
    readonly_fields = ["last_event", "last_processed_at", "created_at", "updated_at"]

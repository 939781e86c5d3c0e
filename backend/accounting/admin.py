# accounting/admin.py
"""
Django admin configuration for accounting models.

IMPORTANT: These are READ MODELS.
==============================
Accounts, journal entries and journal lines are event-sourced read models.
The admin interface is for viewing only. All mutations MUST go through the
command layer (accounting/commands.py), which emits events.
"""

from django.contrib import admin
from django.utils.html import format_html

from .models import Account, JournalEntry, JournalLine, NumberSequence


class ReadOnlyModelAdmin(admin.ModelAdmin):
    """
    Base admin class for read-only models.

    To modify these models, use the command layer (accounting/commands.py).
    """

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def changeform_view(self, request, object_id=None, form_url="", extra_context=None):
        extra_context = extra_context or {}
        extra_context["show_save"] = False
        extra_context["show_save_and_continue"] = False
        extra_context["show_save_and_add_another"] = False
        extra_context["readonly_message"] = (
            "This is a read model. Use the API/command layer to make changes."
        )
        return super().changeform_view(request, object_id, form_url, extra_context)


class JournalLineInline(admin.TabularInline):
    """Inline display of journal lines within journal entry (read-only)."""
    model = JournalLine
    extra = 0
    readonly_fields = ["line_no", "account_code", "account_name", "description", "debit", "credit"]
    fields = ["line_no", "account_code", "account_name", "description", "debit", "credit"]

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =============================================================================
# Account Admin
# =============================================================================

@admin.register(Account)
class AccountAdmin(ReadOnlyModelAdmin):
    """Chart of Accounts (read-only)."""

    list_display = [
        "code", "name", "account_type", "category",
        "normal_balance", "is_active", "is_system",
    ]
    list_filter = ["account_type", "category", "is_active", "is_system"]
    search_fields = ["code", "name", "description"]
    ordering = ["code"]

    fieldsets = (
        (None, {
            "fields": ("public_id", "code", "name"),
        }),
        ("Classification", {
            "fields": ("account_type", "category", "normal_balance"),
        }),
        ("Status", {
            "fields": ("is_active", "is_system", "description"),
        }),
        ("Timestamps", {
            "fields": ("created_at", "updated_at"),
            "classes": ("collapse",),
        }),
    )

    readonly_fields = [
        "public_id", "code", "name", "account_type", "category", "normal_balance",
        "is_active", "is_system", "description", "created_at", "updated_at",
    ]


# =============================================================================
# Journal Entry Admin
# =============================================================================

@admin.register(JournalEntry)
class JournalEntryAdmin(ReadOnlyModelAdmin):
    """Journal entries (read-only)."""

    list_display = [
        "entry_number", "date", "description_truncated", "entry_type",
        "status_colored", "total_debit", "total_credit",
    ]
    list_filter = ["status", "entry_type", "date"]
    search_fields = ["entry_number", "description", "reference"]
    date_hierarchy = "date"
    list_select_related = ["reverses_entry"]
    ordering = ["-date", "-id"]

    fieldsets = (
        (None, {
            "fields": ("public_id", "entry_number", "date", "entry_type"),
        }),
        ("Content", {
            "fields": ("description", "reference", "total_debit", "total_credit"),
        }),
        ("Status & Workflow", {
            "fields": ("status", "posted_at", "posted_by_name", "reversed_at", "reversed_by_name"),
        }),
        ("Source", {
            "fields": ("source_module", "source_document", "reverses_entry"),
            "classes": ("collapse",),
        }),
        ("Audit", {
            "fields": ("created_at", "created_by_name", "updated_at"),
            "classes": ("collapse",),
        }),
    )

    readonly_fields = [
        "public_id", "entry_number", "date", "entry_type", "description", "reference",
        "total_debit", "total_credit", "status", "posted_at", "posted_by_name",
        "reversed_at", "reversed_by_name", "source_module", "source_document",
        "reverses_entry", "created_at", "created_by_name", "updated_at",
    ]
    inlines = [JournalLineInline]

    @admin.display(description="Keterangan")
    def description_truncated(self, obj):
        if len(obj.description) > 50:
            return f"{obj.description[:50]}..."
        return obj.description

    @admin.display(description="Status", ordering="status")
    def status_colored(self, obj):
        colors = {
            JournalEntry.Status.DRAFT: "#007bff",
            JournalEntry.Status.POSTED: "#28a745",
            JournalEntry.Status.REVERSED: "#dc3545",
        }
        return format_html(
            '<span style="color: {}; font-weight: bold;">{}</span>',
            colors.get(obj.status, "#000"),
            obj.get_status_display(),
        )


@admin.register(NumberSequence)
class NumberSequenceAdmin(ReadOnlyModelAdmin):
    list_display = ["name", "next_value", "updated_at"]
    search_fields = ["name"]
    ordering = ["name"]

# projections/admin.py
"""Django admin for projection models. Everything here is read-only."""

from django.contrib import admin

from .models import AccountBalance, ProjectionAppliedEvent


class ReadOnlyProjectionAdmin(admin.ModelAdmin):
    def has_add_permission(self, request):
        return False  # Managed by projection

    def has_change_permission(self, request, obj=None):
        return False  # Managed by projection

    def has_delete_permission(self, request, obj=None):
        return False  # Managed by projection


@admin.register(AccountBalance)
class AccountBalanceAdmin(ReadOnlyProjectionAdmin):
    list_display = [
        "account_code", "account_name", "balance",
        "debit_total", "credit_total", "entry_count", "last_entry_date",
    ]
    list_filter = ["account__account_type"]
    search_fields = ["account__code", "account__name"]
    list_select_related = ["account"]
    ordering = ["account__code"]

    @admin.display(description="Kode", ordering="account__code")
    def account_code(self, obj):
        return obj.account.code

    @admin.display(description="Nama")
    def account_name(self, obj):
        return obj.account.name


@admin.register(ProjectionAppliedEvent)
class ProjectionAppliedEventAdmin(ReadOnlyProjectionAdmin):
    list_display = ["projection_name", "event_id_short", "applied_at"]
    list_filter = ["projection_name"]
    list_select_related = ["event"]
    ordering = ["-applied_at"]

    @admin.display(description="Event")
    def event_id_short(self, obj):
        return str(obj.event_id)[:8] + "..."

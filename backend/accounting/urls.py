# accounting/urls.py
"""
URL configuration for accounting API.

Endpoints:
- /accounts/ - Chart of Accounts CRUD
- /accounts/<code>/ledger/ - General ledger of one account
- /journal-entries/ - Journal Entry CRUD with workflow actions
"""

from django.urls import path

from .views import (
    # Account views
    AccountListCreateView,
    AccountDetailView,
    AccountLedgerView,
    # Journal entry views
    JournalEntryListCreateView,
    JournalEntryDetailView,
    JournalPostView,
    JournalReverseView,
)

app_name = "accounting"

urlpatterns = [
    # ==========================================================================
    # Accounts (Chart of Accounts)
    # ==========================================================================
    path("accounts/", AccountListCreateView.as_view(), name="account-list"),
    path("accounts/<str:code>/", AccountDetailView.as_view(), name="account-detail"),
    path("accounts/<str:code>/ledger/", AccountLedgerView.as_view(), name="account-ledger"),

    # ==========================================================================
    # Journal Entries
    # ==========================================================================
    path("journal-entries/", JournalEntryListCreateView.as_view(), name="journal-entry-list"),
    path("journal-entries/<int:pk>/", JournalEntryDetailView.as_view(), name="journal-entry-detail"),
    path("journal-entries/<int:pk>/post/", JournalPostView.as_view(), name="journal-entry-post"),
    path("journal-entries/<int:pk>/reverse/", JournalReverseView.as_view(), name="journal-entry-reverse"),
]

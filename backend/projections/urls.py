# projections/urls.py
"""
URL configuration for the reports API.

Endpoints:
- /reports/trial-balance/ - Trial balance
- /reports/trial-balance/export/ - Trial balance as csv, xlsx or txt
- /reports/balance-sheet/ - Balance sheet
- /reports/income-statement/ - Income statement
- /reports/account-balances/ - All projected account balances
- /reports/projection-status/ - Projection health monitoring
"""

from django.urls import path

from .views import (
    TrialBalanceView,
    TrialBalanceExportView,
    BalanceSheetView,
    IncomeStatementView,
    AccountBalanceListView,
    ProjectionStatusView,
)

app_name = "projections"

urlpatterns = [
    path("trial-balance/", TrialBalanceView.as_view(), name="trial-balance"),
    path("trial-balance/export/", TrialBalanceExportView.as_view(), name="trial-balance-export"),
    path("balance-sheet/", BalanceSheetView.as_view(), name="balance-sheet"),
    path("income-statement/", IncomeStatementView.as_view(), name="income-statement"),
    path("account-balances/", AccountBalanceListView.as_view(), name="account-balances"),
    path("projection-status/", ProjectionStatusView.as_view(), name="projection-status"),
]

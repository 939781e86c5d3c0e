# projections/views.py
"""
API views for reports.

Trial balance, balance sheet and income statement are computed from
posted journal lines. Account balances are read from the AccountBalance
projection, which has already done the computation.
"""

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from django.utils.dateparse import parse_date

from accounts.authz import resolve_actor, require
from accounting.errors import CommandResult, ErrorCode
from accounting.exports import ExportFormat, trial_balance_export_response
from projections.base import projection_registry
from projections.models import AccountBalance
from projections.reports import balance_sheet, income_statement
from projections.trial_balance import generate_trial_balance, serialize_trial_balance


REPORT_PERMISSION = "accounting.view_journalentry"


class InvalidQueryParam(Exception):
    def __init__(self, name, value):
        super().__init__(f"Invalid date for '{name}': {value}")
        self.name = name


def _date_param(request, name):
    raw = request.query_params.get(name)
    if not raw:
        return None
    try:
        value = parse_date(raw)
    except ValueError:
        value = None
    if value is None:
        raise InvalidQueryParam(name, raw)
    return value


def _invalid(error: InvalidQueryParam) -> Response:
    result = CommandResult.from_code(ErrorCode.INVALID_INPUT, str(error), param=error.name)
    return Response(result.error_payload(), status=result.http_status)


def _total_lag() -> int:
    return sum(projection.get_lag() for projection in projection_registry.all())


class TrialBalanceView(APIView):
    """
    GET /api/reports/trial-balance/?as_of=YYYY-MM-DD

    An unbalanced trial balance is still returned with 200; the
    `warning` field carries the INTEGRITY finding.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, REPORT_PERMISSION)

        try:
            as_of = _date_param(request, "as_of")
        except InvalidQueryParam as e:
            return _invalid(e)

        result = serialize_trial_balance(generate_trial_balance(as_of))

        lag = _total_lag()
        result["lag"] = lag
        result["lag_warning"] = lag > 0
        if lag > 0:
            result["warning_message"] = f"{lag} events pending. Run projections to update balances."

        return Response(result)


class TrialBalanceExportView(APIView):
    """
    GET /api/reports/trial-balance/export/?as_of=YYYY-MM-DD&format=csv|xlsx|txt
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, REPORT_PERMISSION)

        export_format = request.query_params.get("format", ExportFormat.CSV)
        if export_format not in ExportFormat.CHOICES:
            result = CommandResult.from_code(
                ErrorCode.INVALID_INPUT,
                f"Invalid format: {export_format}. Must be one of {ExportFormat.CHOICES}",
            )
            return Response(result.error_payload(), status=result.http_status)

        try:
            as_of = _date_param(request, "as_of")
        except InvalidQueryParam as e:
            return _invalid(e)

        return trial_balance_export_response(generate_trial_balance(as_of), export_format)


class BalanceSheetView(APIView):
    """GET /api/reports/balance-sheet/?as_of=YYYY-MM-DD"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, REPORT_PERMISSION)

        try:
            as_of = _date_param(request, "as_of")
        except InvalidQueryParam as e:
            return _invalid(e)

        return Response(balance_sheet(as_of))


class IncomeStatementView(APIView):
    """
    GET /api/reports/income-statement/?start=YYYY-MM-DD&end=YYYY-MM-DD

    Defaults to the current year to date.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, REPORT_PERMISSION)

        try:
            start = _date_param(request, "start")
            end = _date_param(request, "end")
        except InvalidQueryParam as e:
            return _invalid(e)

        if start and end and start > end:
            result = CommandResult.from_code(ErrorCode.INVALID_INPUT, "start must not be after end.")
            return Response(result.error_payload(), status=result.http_status)

        return Response(income_statement(start, end))


class AccountBalanceListView(APIView):
    """
    GET /api/reports/account-balances/

    Returns all projected account balances.

    Query params:
    - type: account type filter
    - has_activity: "true" to hide accounts nothing was posted to
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, REPORT_PERMISSION)

        balances = AccountBalance.objects.select_related("account").order_by("account__code")

        account_type = request.query_params.get("type")
        if account_type:
            balances = balances.filter(account__account_type=account_type)

        if request.query_params.get("has_activity") == "true":
            balances = balances.filter(entry_count__gt=0)

        data = [
            {
                "account_code": bal.account.code,
                "account_name": bal.account.name,
                "account_type": bal.account.account_type,
                "normal_balance": bal.account.normal_balance,
                "balance": str(bal.balance),
                "debit_total": str(bal.debit_total),
                "credit_total": str(bal.credit_total),
                "entry_count": bal.entry_count,
                "last_entry_date": bal.last_entry_date.isoformat() if bal.last_entry_date else None,
            }
            for bal in balances
        ]

        return Response({"balances": data, "count": len(data)})


class ProjectionStatusView(APIView):
    """
    GET /api/reports/projection-status/

    Returns status of all projections for monitoring.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, REPORT_PERMISSION)

        projections = []
        for projection in projection_registry.all():
            bookmark = projection.get_bookmark()
            lag = projection.get_lag()
            projections.append({
                "name": projection.name,
                "consumes": projection.consumes,
                "lag": lag,
                "is_healthy": lag == 0 and not (bookmark and bookmark.error_count),
                "is_paused": bookmark.is_paused if bookmark else False,
                "error_count": bookmark.error_count if bookmark else 0,
                "last_error": bookmark.last_error if bookmark else "",
                "last_processed_at": (
                    bookmark.last_processed_at.isoformat()
                    if bookmark and bookmark.last_processed_at
                    else None
                ),
            })

        return Response({
            "projections": projections,
            "total_lag": sum(p["lag"] for p in projections),
            "all_healthy": all(p["is_healthy"] for p in projections),
        }, status=status.HTTP_200_OK)

# accounting/views.py
"""
Thin views that delegate to the commands layer.

Views handle: HTTP parsing, authentication, response formatting.
Commands handle: business logic, validation, events.

CRITICAL: All mutations (create, update, delete) MUST go through commands
to ensure events are emitted. Views should never directly call .save() on models.

Command failures are rendered with result.error_payload() and the HTTP
status of their error kind (400 validation, 404 not found, 409 conflict
or protected).
"""

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from django.http import Http404
from django.shortcuts import get_object_or_404
from django.utils.dateparse import parse_date

from accounts.authz import resolve_actor, require
from .models import JournalEntry
from .queries import get_account_by_code, list_accounts, list_entries
from .serializers import (
    AccountSerializer,
    AccountCreateSerializer,
    AccountUpdateSerializer,
    JournalEntrySerializer,
    JournalEntryCreateSerializer,
)
from .commands import (
    create_account,
    update_account,
    delete_account,
    create_journal_entry,
    post_journal_entry,
    reverse_journal_entry,
    delete_journal_entry,
)
from .errors import CommandResult, ErrorCode


def _failure(result: CommandResult) -> Response:
    return Response(result.error_payload(), status=result.http_status)


def _pending(message: str) -> Response:
    """The event is stored; the read model catches up asynchronously."""
    return Response({"detail": message}, status=status.HTTP_202_ACCEPTED)


def _bool_param(value):
    if value is None or value == "":
        return None
    return value.lower() in ("1", "true", "yes")


def _date_param(request, name):
    raw = request.query_params.get(name)
    if not raw:
        return None
    try:
        value = parse_date(raw)
    except ValueError:
        value = None
    if value is None:
        raise ValueError(f"Invalid date for '{name}': {raw}")
    return value


def _invalid_param(error: ValueError) -> Response:
    return _failure(CommandResult.from_code(ErrorCode.INVALID_INPUT, str(error)))


# =============================================================================
# Account Views
# =============================================================================

class AccountListCreateView(APIView):
    """
    GET /api/accounting/accounts/?type=&search=&active= -> list accounts
    POST /api/accounting/accounts/ -> create account

    POST goes through the command layer to emit events.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "accounting.view_account")

        accounts = list_accounts(
            account_type=request.query_params.get("type"),
            search=request.query_params.get("search"),
            active_only=_bool_param(request.query_params.get("active")),
        )
        return Response(AccountSerializer(accounts, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        # Permission check happens in command

        input_serializer = AccountCreateSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = create_account(actor, **input_serializer.validated_data)
        if not result.success:
            return _failure(result)
        if result.data is None:
            return _pending("Account creation accepted.")

        return Response(AccountSerializer(result.data).data, status=status.HTTP_201_CREATED)


class AccountDetailView(APIView):
    """
    GET /api/accounting/accounts/<code>/ -> retrieve account
    PATCH /api/accounting/accounts/<code>/ -> update account
    DELETE /api/accounting/accounts/<code>/ -> delete account

    PATCH and DELETE go through the command layer to emit events.
    """
    permission_classes = [IsAuthenticated]

    def get_object(self, code):
        account = get_account_by_code(code)
        if not account:
            raise Http404
        return account

    def get(self, request, code):
        actor = resolve_actor(request)
        require(actor, "accounting.view_account")
        return Response(AccountSerializer(self.get_object(code)).data)

    def patch(self, request, code):
        actor = resolve_actor(request)
        account = self.get_object(code)

        input_serializer = AccountUpdateSerializer(data=request.data, partial=True)
        input_serializer.is_valid(raise_exception=True)

        result = update_account(actor, account.id, **input_serializer.validated_data)
        if not result.success:
            return _failure(result)
        if result.data is None:
            return _pending("Account update accepted.")

        return Response(AccountSerializer(result.data).data)

    def delete(self, request, code):
        actor = resolve_actor(request)
        account = self.get_object(code)

        result = delete_account(actor, account.id)
        if not result.success:
            return _failure(result)

        return Response(status=status.HTTP_204_NO_CONTENT)


class AccountLedgerView(APIView):
    """
    GET /api/accounting/accounts/<code>/ledger/?start=&end=

    Rows are restricted to the range; the running balance starts from
    the opening balance carried in from before `start`.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, code):
        from projections.ledger import get_by_account, get_by_date_range

        actor = resolve_actor(request)
        require(actor, "accounting.view_account")

        account = get_account_by_code(code)
        if not account:
            raise Http404

        try:
            start = _date_param(request, "start")
            end = _date_param(request, "end")
            if start or end:
                ledger = get_by_date_range(account, start, end)
            else:
                ledger = get_by_account(account)
        except ValueError as e:
            return _invalid_param(e)

        return Response(ledger.summary())


# =============================================================================
# Journal Entry Views
# =============================================================================

class JournalEntryListCreateView(APIView):
    """
    GET /api/accounting/journal-entries/?status=&type=&date_from=&date_to=
    POST /api/accounting/journal-entries/ -> create a MANUAL entry in DRAFT

    POST goes through the command layer to emit events.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "accounting.view_journalentry")

        try:
            entries = list_entries(
                status=request.query_params.get("status"),
                entry_type=request.query_params.get("type"),
                date_from=_date_param(request, "date_from"),
                date_to=_date_param(request, "date_to"),
            )
        except ValueError as e:
            return _invalid_param(e)

        return Response(JournalEntrySerializer(entries, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)

        input_serializer = JournalEntryCreateSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)
        data = input_serializer.validated_data

        result = create_journal_entry(
            actor,
            date=data["date"],
            description=data["description"],
            reference=data.get("reference", ""),
            lines=[dict(line) for line in data["lines"]],
        )
        if not result.success:
            return _failure(result)
        if result.data is None:
            return _pending("Journal entry accepted.")

        return Response(JournalEntrySerializer(result.data).data, status=status.HTTP_201_CREATED)


class JournalEntryDetailView(APIView):
    """
    GET /api/accounting/journal-entries/<pk>/ -> retrieve
    DELETE /api/accounting/journal-entries/<pk>/ -> delete (manual drafts only)
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        actor = resolve_actor(request)
        require(actor, "accounting.view_journalentry")

        entry = get_object_or_404(
            JournalEntry.objects.select_related("reverses_entry").prefetch_related("lines"),
            pk=pk,
        )
        return Response(JournalEntrySerializer(entry).data)

    def delete(self, request, pk):
        actor = resolve_actor(request)

        result = delete_journal_entry(actor, pk)
        if not result.success:
            return _failure(result)

        return Response(status=status.HTTP_204_NO_CONTENT)


class JournalPostView(APIView):
    """
    POST /api/accounting/journal-entries/<pk>/post/ -> post entry
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)

        result = post_journal_entry(actor, pk)
        if not result.success:
            return _failure(result)
        if result.data is None:
            return _pending("Posting accepted.")

        return Response(JournalEntrySerializer(result.data).data)


class JournalReverseView(APIView):
    """
    POST /api/accounting/journal-entries/<pk>/reverse/ -> reverse entry

    Body (optional): {"date": "YYYY-MM-DD"} for the reversal entry date.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)

        result = reverse_journal_entry(actor, pk, reversal_date=request.data.get("date"))
        if not result.success:
            return _failure(result)

        original = result.data["original"]
        reversal = result.data["reversal"]
        if original is None or reversal is None:
            return _pending("Reversal accepted.")

        return Response(
            {
                "original": JournalEntrySerializer(original).data,
                "reversal": JournalEntrySerializer(reversal).data,
            },
            status=status.HTTP_201_CREATED,
        )

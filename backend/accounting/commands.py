# accounting/commands.py
"""
Command layer for accounting operations.

Commands are the single point where business operations happen.
Views call commands; commands enforce rules and emit events.

Pattern:
1. Validate permissions (require)
2. Apply business policies (can_*)
3. Emit event (emit_event)
4. Run projections so the read models reflect the event
5. Return CommandResult

ALL state changes MUST go through commands to ensure events are emitted.
Every command runs in one database transaction: a rejected or failed
command leaves no events and no read-model rows behind.
"""

from datetime import date as date_cls
from decimal import Decimal, InvalidOperation
import hashlib
import json
import logging
import uuid

from django.conf import settings
from django.db import transaction, IntegrityError
from django.utils import timezone

from accounts.authz import ActorContext, require
from accounting.aggregates import load_journal_entry_aggregate, load_account_aggregate
from accounting.errors import CommandResult, ErrorCode
from accounting.models import Account, JournalEntry, JournalLine, NumberSequence
from accounting.policies import (
    can_change_account_fields,
    can_delete_account,
    can_delete_entry,
    can_post_entry,
    can_post_to_account,
    can_reverse_entry,
    can_use_category,
    can_use_normal_balance,
)
from events.emitter import emit_event, get_aggregate_events
from events.types import (
    EventTypes,
    AccountCreatedData,
    AccountUpdatedData,
    AccountDeletedData,
    JournalEntryCreatedData,
    JournalEntryPostedData,
    JournalEntryReversedData,
    JournalEntryDeletedData,
    JournalLineData,
)
from projections.models import AccountBalance
from projections.write_barrier import command_writes_allowed


logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
# Largest amount an 18-digit, 2-place amount column can hold
MAX_AMOUNT = Decimal("9999999999999999.99")
REVERSAL_PREFIX = "Pembalikan"


def _changes_hash(changes: dict) -> str:
    payload = json.dumps(changes, sort_keys=True, separators=(",", ":"), default=str).encode()
    return hashlib.sha256(payload).hexdigest()[:12]


def _next_sequence(name: str) -> int:
    """
    Allocate the next value of a named sequence.
    Uses select_for_update to avoid concurrent duplicates; the row stays
    locked until the calling command's transaction ends.
    """
    with command_writes_allowed():
        try:
            seq = NumberSequence.objects.select_for_update().get(name=name)
        except NumberSequence.DoesNotExist:
            try:
                with transaction.atomic():
                    seq = NumberSequence.objects.create(name=name, next_value=1)
            except IntegrityError:
                seq = NumberSequence.objects.select_for_update().get(name=name)

        value = seq.next_value
        seq.next_value = value + 1
        seq.save(update_fields=["next_value", "updated_at"])
        return value


def _next_entry_number(entry_date: date_cls) -> str:
    """JE-YYYYMM-NNNN, numbered per calendar month of the entry date."""
    period = entry_date.strftime("%Y%m")
    value = _next_sequence(f"journal_entry:{period}")
    return f"JE-{period}-{value:04d}"


def _process_projections() -> None:
    if not settings.PROJECTIONS_SYNC:
        from projections.tasks import process_projections

        transaction.on_commit(lambda: process_projections.delay())
        return

    from projections.base import projection_registry

    for projection in projection_registry.all():
        projection.process_pending(limit=1000)


def _as_date(value) -> date_cls:
    if isinstance(value, date_cls):
        return value
    return date_cls.fromisoformat(str(value))


def _as_amount(value) -> Decimal:
    if value in (None, ""):
        return Decimal("0.00")
    amount = Decimal(str(value))
    if not amount.is_finite():
        raise ValueError(f"Amount must be a finite number: {value}")
    return amount


def _max_length(model, field_name: str) -> int:
    return model._meta.get_field(field_name).max_length


def _reversal_text(text: str, model, field_name: str) -> str:
    """Prefixed reversal text, cut to fit the column it is stored in."""
    return f"{REVERSAL_PREFIX}: {text}"[:_max_length(model, field_name)]


# =============================================================================
# Account Commands
# =============================================================================

@transaction.atomic
def create_account(
    actor: ActorContext,
    code: str,
    name: str,
    account_type: str,
    category: str,
    normal_balance: str = None,
    description: str = "",
    is_active: bool = True,
    is_system: bool = False,
) -> CommandResult:
    """
    Create a new account in the chart of accounts.

    Args:
        actor: The actor context
        code: Account code (unique)
        name: Account name
        account_type: One of Account.AccountType choices
        category: Must be permitted for account_type
        normal_balance: Optional; must agree with account_type when given
        description: Free text
        is_system: Protects the account from deletion and locks its
            code, type and normal balance (used by the seed)

    Returns:
        CommandResult with the created Account or error
    """
    require(actor, "accounting.add_account")

    code = (code or "").strip()
    name = (name or "").strip()
    if not code or not name:
        return CommandResult.from_code(ErrorCode.INVALID_INPUT, "Account code and name are required.")

    if account_type not in Account.AccountType.values:
        return CommandResult.from_code(
            ErrorCode.INVALID_INPUT, f"Unknown account type '{account_type}'."
        )

    if Account.objects.filter(code=code).exists():
        return CommandResult.from_code(
            ErrorCode.DUPLICATE_CODE, f"Account code '{code}' already exists.", account_code=code
        )

    allowed, error_code = can_use_category(account_type, category)
    if not allowed:
        return CommandResult.from_code(
            error_code,
            f"Category '{category}' is not valid for account type {account_type}.",
            account_type=account_type,
            category=category,
        )

    allowed, error_code = can_use_normal_balance(account_type, normal_balance)
    if not allowed:
        return CommandResult.from_code(
            error_code,
            f"Account type {account_type} has normal balance "
            f"{Account.normal_balance_for(account_type)}, not {normal_balance}.",
        )

    account_public_id = uuid.uuid4()

    event = emit_event(
        actor=actor,
        event_type=EventTypes.ACCOUNT_CREATED,
        aggregate_type="Account",
        aggregate_id=str(account_public_id),
        idempotency_key=f"account.created:{account_public_id}",
        data=AccountCreatedData(
            account_public_id=str(account_public_id),
            code=code,
            name=name,
            account_type=account_type,
            category=category,
            normal_balance=Account.normal_balance_for(account_type),
            description=description or "",
            is_active=is_active,
            is_system=is_system,
        ).to_dict(),
    )

    _process_projections()
    logger.info("Account %s created by %s", code, actor.display_name)
    account = Account.objects.filter(public_id=account_public_id).first()
    return CommandResult.ok(account, event=event)


ACCOUNT_UPDATABLE_FIELDS = {
    "code", "name", "account_type", "category", "normal_balance", "description", "is_active",
}


@transaction.atomic
def update_account(actor: ActorContext, account_id: int, **updates) -> CommandResult:
    """
    Update an existing account. Only the provided fields change.

    Rules:
    - System accounts keep their code, type and normal balance
    - The category is re-validated against the resulting type
    - The type of an account that already has journal lines is fixed

    Returns:
        CommandResult with updated Account or error
    """
    require(actor, "accounting.change_account")

    try:
        account = Account.objects.select_for_update().get(pk=account_id)
    except Account.DoesNotExist:
        return CommandResult.from_code(ErrorCode.ACCOUNT_NOT_FOUND)

    aggregate = load_account_aggregate(str(account.public_id))
    if aggregate and aggregate.deleted:
        return CommandResult.from_code(ErrorCode.ACCOUNT_NOT_FOUND)

    unknown = set(updates) - ACCOUNT_UPDATABLE_FIELDS
    if unknown:
        return CommandResult.from_code(
            ErrorCode.INVALID_INPUT, f"Fields cannot be updated: {', '.join(sorted(unknown))}."
        )

    if "code" in updates:
        updates["code"] = (updates["code"] or "").strip()
        if not updates["code"]:
            return CommandResult.from_code(ErrorCode.INVALID_INPUT, "Account code is required.")

    changes = {}
    for field_name, value in updates.items():
        old_value = getattr(account, field_name)
        if old_value != value:
            changes[field_name] = {"old": old_value, "new": value}

    if not changes:
        return CommandResult.ok(account)  # No changes, no event

    allowed, error_code = can_change_account_fields(account, changes.keys())
    if not allowed:
        return CommandResult.from_code(error_code, changed_fields=sorted(changes))

    new_type = updates.get("account_type", account.account_type)
    if new_type not in Account.AccountType.values:
        return CommandResult.from_code(ErrorCode.INVALID_INPUT, f"Unknown account type '{new_type}'.")

    if "code" in changes and Account.objects.filter(code=updates["code"]).exclude(pk=account.pk).exists():
        return CommandResult.from_code(
            ErrorCode.DUPLICATE_CODE,
            f"Account code '{updates['code']}' already exists.",
            account_code=updates["code"],
        )

    new_category = updates.get("category", account.category)
    allowed, error_code = can_use_category(new_type, new_category)
    if not allowed:
        return CommandResult.from_code(
            error_code,
            f"Category '{new_category}' is not valid for account type {new_type}.",
            account_type=new_type,
            category=new_category,
        )

    allowed, error_code = can_use_normal_balance(new_type, updates.get("normal_balance"))
    if not allowed:
        return CommandResult.from_code(error_code)

    # Normal balance is derived from the type; record the derived change
    changes.pop("normal_balance", None)
    if "account_type" in changes:
        derived = Account.normal_balance_for(new_type)
        if derived != account.normal_balance:
            changes["normal_balance"] = {"old": account.normal_balance, "new": derived}

    version = len(get_aggregate_events("Account", str(account.public_id)))
    event = emit_event(
        actor=actor,
        event_type=EventTypes.ACCOUNT_UPDATED,
        aggregate_type="Account",
        aggregate_id=str(account.public_id),
        idempotency_key=f"account.updated:{account.public_id}:{version}:{_changes_hash(changes)}",
        data=AccountUpdatedData(
            account_public_id=str(account.public_id),
            changes=changes,
        ).to_dict(),
    )

    _process_projections()
    logger.info("Account %s updated by %s: %s", account.code, actor.display_name, sorted(changes))
    account = Account.objects.filter(public_id=account.public_id).first()
    return CommandResult.ok(account, event=event)


@transaction.atomic
def delete_account(actor: ActorContext, account_id: int) -> CommandResult:
    """
    Delete an account.

    Refused, in this order, when the balance is non-zero, when the
    account is system-protected, or when journal lines reference it.

    Returns:
        CommandResult with deletion confirmation or error
    """
    require(actor, "accounting.delete_account")

    try:
        account = Account.objects.select_for_update().get(pk=account_id)
    except Account.DoesNotExist:
        return CommandResult.from_code(ErrorCode.ACCOUNT_NOT_FOUND)

    allowed, error_code = can_delete_account(account)
    if not allowed:
        details = {"account_code": account.code}
        if error_code == ErrorCode.ACCOUNT_HAS_BALANCE:
            details["balance"] = str(account.get_balance())
        logger.info("Refused to delete account %s: %s", account.code, error_code.value)
        return CommandResult.from_code(error_code, **details)

    event = emit_event(
        actor=actor,
        event_type=EventTypes.ACCOUNT_DELETED,
        aggregate_type="Account",
        aggregate_id=str(account.public_id),
        idempotency_key=f"account.deleted:{account.public_id}",
        data=AccountDeletedData(
            account_public_id=str(account.public_id),
            code=account.code,
            name=account.name,
        ).to_dict(),
    )

    _process_projections()
    logger.info("Account %s deleted by %s", account.code, actor.display_name)
    return CommandResult.ok({"deleted": True, "code": account.code}, event=event)


# =============================================================================
# Journal Entry Commands
# =============================================================================

def _resolve_accounts(lines: list) -> tuple[dict, CommandResult | None]:
    """
    Map each line's account reference (account_id or account_code) to an Account.
    """
    ids = {line.get("account_id") for line in lines if line.get("account_id")}
    codes = {line.get("account_code") for line in lines if line.get("account_code")}
    by_id = {acc.id: acc for acc in Account.objects.filter(id__in=ids)}
    by_code = {acc.code: acc for acc in Account.objects.filter(code__in=codes)}

    resolved = {}
    for idx, line in enumerate(lines):
        account = None
        if line.get("account_id"):
            account = by_id.get(line["account_id"])
        elif line.get("account_code"):
            account = by_code.get(line["account_code"])
        if account is None:
            ref = line.get("account_id") or line.get("account_code")
            return {}, CommandResult.from_code(
                ErrorCode.ACCOUNT_NOT_FOUND,
                f"Account {ref} not found.",
                line_no=idx + 1,
                account=str(ref) if ref is not None else None,
            )
        resolved[idx] = account
    return resolved, None


def _build_lines(lines: list) -> tuple[list, Decimal, Decimal, CommandResult | None]:
    """
    Validate raw lines and turn them into event line payloads.

    Returns (line_data, total_debit, total_credit, failure).
    """
    if not lines or len(lines) < 2:
        return [], Decimal("0"), Decimal("0"), CommandResult.from_code(
            ErrorCode.INSUFFICIENT_LINES, line_count=len(lines or [])
        )

    accounts, failure = _resolve_accounts(lines)
    if failure:
        return [], Decimal("0"), Decimal("0"), failure

    line_data = []
    total_debit = Decimal("0.00")
    total_credit = Decimal("0.00")

    for idx, line in enumerate(lines):
        line_no = idx + 1
        account = accounts[idx]

        try:
            debit = _as_amount(line.get("debit"))
            credit = _as_amount(line.get("credit"))
        except (InvalidOperation, ValueError):
            return [], total_debit, total_credit, CommandResult.from_code(
                ErrorCode.INVALID_LINE, f"Line {line_no} has a non-numeric amount.", line_no=line_no
            )

        if debit < 0 or credit < 0 or (debit > 0 and credit > 0) or (debit == 0 and credit == 0):
            return [], total_debit, total_credit, CommandResult.from_code(
                ErrorCode.INVALID_LINE, line_no=line_no
            )

        if debit > MAX_AMOUNT or credit > MAX_AMOUNT:
            return [], total_debit, total_credit, CommandResult.from_code(
                ErrorCode.INVALID_LINE,
                f"Line {line_no} exceeds the maximum amount of {MAX_AMOUNT}.",
                line_no=line_no,
            )

        # Sub-cent amounts are rejected, never rounded
        if debit != debit.quantize(CENT) or credit != credit.quantize(CENT):
            return [], total_debit, total_credit, CommandResult.from_code(
                ErrorCode.INVALID_LINE,
                f"Line {line_no} has more than 2 decimal places.",
                line_no=line_no,
            )
        debit = debit.quantize(CENT)
        credit = credit.quantize(CENT)

        line_description = line.get("description", "") or ""
        if len(line_description) > _max_length(JournalLine, "description"):
            return [], total_debit, total_credit, CommandResult.from_code(
                ErrorCode.INVALID_LINE,
                f"Line {line_no} description is too long.",
                line_no=line_no,
            )

        allowed, error_code = can_post_to_account(account)
        if not allowed:
            return [], total_debit, total_credit, CommandResult.from_code(
                error_code,
                f"Cannot post to inactive account: {account.code}",
                line_no=line_no,
                account_code=account.code,
            )

        total_debit += debit
        total_credit += credit
        line_data.append(JournalLineData(
            line_no=line_no,
            account_public_id=str(account.public_id),
            account_code=account.code,
            account_name=account.name,
            description=line_description,
            debit=str(debit),
            credit=str(credit),
        ).to_dict())

    if total_debit > MAX_AMOUNT or total_credit > MAX_AMOUNT:
        return [], total_debit, total_credit, CommandResult.from_code(
            ErrorCode.INVALID_INPUT,
            f"Entry totals exceed the maximum amount of {MAX_AMOUNT}.",
            total_debit=str(total_debit),
            total_credit=str(total_credit),
        )

    if total_debit != total_credit or total_debit <= 0:
        return [], total_debit, total_credit, CommandResult.from_code(
            ErrorCode.UNBALANCED_ENTRY,
            f"Entry is not balanced. Debit={total_debit} Credit={total_credit}",
            total_debit=str(total_debit),
            total_credit=str(total_credit),
            difference=str(abs(total_debit - total_credit)),
        )

    return line_data, total_debit, total_credit, None


def _check_balance_capacity(line_data: list) -> CommandResult | None:
    """
    Posting adds every line to its account's running debit and credit
    totals. Refuse a post that would push a total past MAX_AMOUNT.
    """
    added = {}
    codes = {}
    for line in line_data:
        public_id = line["account_public_id"]
        debit, credit = added.get(public_id, (Decimal("0.00"), Decimal("0.00")))
        added[public_id] = (debit + Decimal(line["debit"]), credit + Decimal(line["credit"]))
        codes[public_id] = line["account_code"]

    balances = {
        str(bal.account.public_id): bal
        for bal in AccountBalance.objects.select_related("account").filter(
            account__public_id__in=list(added)
        )
    }
    for public_id, (debit, credit) in added.items():
        balance = balances.get(public_id)
        if balance:
            debit += balance.debit_total
            credit += balance.credit_total
        if debit > MAX_AMOUNT or credit > MAX_AMOUNT:
            return CommandResult.from_code(
                ErrorCode.INVALID_INPUT,
                f"Posting would exceed the maximum balance of account {codes[public_id]}.",
                account_code=codes[public_id],
            )
    return None


@transaction.atomic
def create_journal_entry(
    actor: ActorContext,
    date,
    description: str,
    lines: list,
    reference: str = "",
    entry_type: str = JournalEntry.EntryType.MANUAL,
    source_module: str = "",
    source_document: str = "",
) -> CommandResult:
    """
    Create a new journal entry in DRAFT status.

    Args:
        actor: The actor context
        date: Entry date (date or ISO string)
        description: Entry description
        lines: List of line dicts with account_id or account_code,
            description, debit, credit
        reference: Optional external reference
        entry_type: MANUAL for user entries; other types are automatic

    Returns:
        CommandResult with created JournalEntry or error. An unbalanced
        entry fails with UNBALANCED_ENTRY and carries both totals and
        the difference in details.
    """
    require(actor, "accounting.add_journalentry")

    if entry_type not in JournalEntry.EntryType.values:
        return CommandResult.from_code(ErrorCode.INVALID_INPUT, f"Unknown entry type '{entry_type}'.")

    try:
        entry_date = _as_date(date)
    except ValueError:
        return CommandResult.from_code(ErrorCode.INVALID_INPUT, f"Invalid date '{date}'.")

    for field_name, value in (
        ("description", description),
        ("reference", reference),
        ("source_module", source_module),
        ("source_document", source_document),
    ):
        if len(value or "") > _max_length(JournalEntry, field_name):
            return CommandResult.from_code(
                ErrorCode.INVALID_INPUT, f"Entry {field_name} is too long.", field=field_name
            )

    line_data, total_debit, total_credit, failure = _build_lines(lines)
    if failure:
        logger.info("Rejected journal entry from %s: %s", actor.display_name, failure.code.value)
        return failure

    entry_public_id = uuid.uuid4()
    entry_number = _next_entry_number(entry_date)

    event = emit_event(
        actor=actor,
        event_type=EventTypes.JOURNAL_ENTRY_CREATED,
        aggregate_type="JournalEntry",
        aggregate_id=str(entry_public_id),
        idempotency_key=f"journal_entry.created:{entry_public_id}",
        data=JournalEntryCreatedData(
            entry_public_id=str(entry_public_id),
            entry_number=entry_number,
            date=entry_date.isoformat(),
            entry_type=entry_type,
            description=description or "",
            reference=reference or "",
            source_module=source_module or "",
            source_document=source_document or "",
            total_debit=str(total_debit),
            total_credit=str(total_credit),
            lines=line_data,
            status=JournalEntry.Status.DRAFT,
            created_by_id=actor.user_id,
            created_by_name=actor.display_name,
        ).to_dict(),
    )

    _process_projections()
    logger.info("Journal entry %s created by %s", entry_number, actor.display_name)
    entry = JournalEntry.objects.filter(public_id=entry_public_id).first()
    return CommandResult.ok(entry, event=event)


@transaction.atomic
def post_journal_entry(actor: ActorContext, entry_id: int) -> CommandResult:
    """
    Post a journal entry, making it affect account balances.

    The entry row is locked for the whole command; the DRAFT status
    check makes a second post fail with ENTRY_ALREADY_POSTED. Lines
    are re-validated against the accounts as they are now.

    Returns:
        CommandResult with posted JournalEntry or error
    """
    require(actor, "accounting.post_journalentry")

    try:
        entry = JournalEntry.objects.select_for_update().get(pk=entry_id)
    except JournalEntry.DoesNotExist:
        return CommandResult.from_code(ErrorCode.ENTRY_NOT_FOUND)

    aggregate = load_journal_entry_aggregate(str(entry.public_id))
    if not aggregate or aggregate.deleted:
        return CommandResult.from_code(ErrorCode.ENTRY_NOT_FOUND)

    allowed, error_code = can_post_entry(aggregate)
    if not allowed:
        return CommandResult.from_code(
            error_code, entry_number=entry.entry_number, status=aggregate.status
        )

    raw_lines = [
        {
            "account_code": None,
            "account_id": None,
            "public_id": line.get("account_public_id"),
            "description": line.get("description", ""),
            "debit": line.get("debit"),
            "credit": line.get("credit"),
        }
        for line in aggregate.lines
    ]
    accounts = {
        str(acc.public_id): acc
        for acc in Account.objects.filter(public_id__in=[l["public_id"] for l in raw_lines])
    }
    for line in raw_lines:
        account = accounts.get(line["public_id"])
        if account is None:
            return CommandResult.from_code(ErrorCode.ACCOUNT_NOT_FOUND, account=line["public_id"])
        line["account_id"] = account.id

    line_data, total_debit, total_credit, failure = _build_lines(raw_lines)
    if failure:
        return failure

    failure = _check_balance_capacity(line_data)
    if failure:
        return failure

    posted_at = timezone.now()

    event = emit_event(
        actor=actor,
        event_type=EventTypes.JOURNAL_ENTRY_POSTED,
        aggregate_type="JournalEntry",
        aggregate_id=str(entry.public_id),
        idempotency_key=f"journal_entry.posted:{entry.public_id}",
        data=JournalEntryPostedData(
            entry_public_id=str(entry.public_id),
            entry_number=aggregate.entry_number or entry.entry_number,
            date=aggregate.date or entry.date.isoformat(),
            entry_type=aggregate.entry_type,
            description=aggregate.description,
            reference=aggregate.reference,
            source_module=aggregate.source_module,
            source_document=aggregate.source_document,
            posted_at=posted_at.isoformat(),
            posted_by_id=actor.user_id,
            posted_by_name=actor.display_name,
            total_debit=str(total_debit),
            total_credit=str(total_credit),
            lines=line_data,
        ).to_dict(),
    )

    _process_projections()
    logger.info("Journal entry %s posted by %s", entry.entry_number, actor.display_name)
    posted_entry = JournalEntry.objects.filter(public_id=entry.public_id).first()
    return CommandResult.ok(posted_entry, event=event)


@transaction.atomic
def reverse_journal_entry(actor: ActorContext, entry_id: int, reversal_date=None) -> CommandResult:
    """
    Reverse a posted journal entry.

    Creates a new ADJUSTMENT entry with swapped debit/credit amounts,
    posts it, and marks the original entry as REVERSED.

    IMPORTANT: Emits TWO events:
    1. JOURNAL_ENTRY_POSTED for the reversal entry (so projections update balances)
    2. JOURNAL_ENTRY_REVERSED on the original's stream for the audit trail

    Returns:
        CommandResult with {"original": entry, "reversal": reversal_entry} or error
    """
    require(actor, "accounting.reverse_journalentry")

    try:
        original = JournalEntry.objects.select_for_update().get(pk=entry_id)
    except JournalEntry.DoesNotExist:
        return CommandResult.from_code(ErrorCode.ENTRY_NOT_FOUND)

    aggregate = load_journal_entry_aggregate(str(original.public_id))
    if not aggregate or aggregate.deleted:
        return CommandResult.from_code(ErrorCode.ENTRY_NOT_FOUND)

    allowed, error_code = can_reverse_entry(aggregate)
    if not allowed:
        return CommandResult.from_code(
            error_code, entry_number=original.entry_number, status=aggregate.status
        )

    reversed_at = timezone.now()
    try:
        entry_date = _as_date(reversal_date) if reversal_date else timezone.localdate()
    except ValueError:
        return CommandResult.from_code(ErrorCode.INVALID_INPUT, f"Invalid date '{reversal_date}'.")

    reversal_line_data = []
    for line in aggregate.lines:
        line_description = line.get("description", "")
        reversal_line_data.append(JournalLineData(
            line_no=line.get("line_no"),
            account_public_id=line.get("account_public_id"),
            account_code=line.get("account_code", ""),
            account_name=line.get("account_name", ""),
            description=(
                _reversal_text(line_description, JournalLine, "description") if line_description else ""
            ),
            debit=str(line.get("credit", "0")),
            credit=str(line.get("debit", "0")),
        ).to_dict())

    failure = _check_balance_capacity(reversal_line_data)
    if failure:
        return failure

    reversal_public_id = uuid.uuid4()
    reversal_entry_number = _next_entry_number(entry_date)

    event_posted = emit_event(
        actor=actor,
        event_type=EventTypes.JOURNAL_ENTRY_POSTED,
        aggregate_type="JournalEntry",
        aggregate_id=str(reversal_public_id),
        idempotency_key=f"journal_entry.reversal.posted:{original.public_id}",
        data=JournalEntryPostedData(
            entry_public_id=str(reversal_public_id),
            entry_number=reversal_entry_number,
            date=entry_date.isoformat(),
            entry_type=JournalEntry.EntryType.ADJUSTMENT,
            description=_reversal_text(aggregate.description, JournalEntry, "description"),
            reference=aggregate.entry_number or original.entry_number,
            source_module="reversal",
            source_document=aggregate.entry_number or original.entry_number,
            posted_at=reversed_at.isoformat(),
            posted_by_id=actor.user_id,
            posted_by_name=actor.display_name,
            total_debit=str(aggregate.total_credit),
            total_credit=str(aggregate.total_debit),
            lines=reversal_line_data,
            reverses_entry_public_id=str(original.public_id),
        ).to_dict(),
    )

    event_reversed = emit_event(
        actor=actor,
        event_type=EventTypes.JOURNAL_ENTRY_REVERSED,
        aggregate_type="JournalEntry",
        aggregate_id=str(original.public_id),
        idempotency_key=f"journal_entry.reversed:{original.public_id}",
        caused_by_event=event_posted,
        data=JournalEntryReversedData(
            original_entry_public_id=str(original.public_id),
            reversal_entry_public_id=str(event_posted.data.get("entry_public_id", reversal_public_id)),
            reversed_at=reversed_at.isoformat(),
            reversed_by_id=actor.user_id,
            reversed_by_name=actor.display_name,
        ).to_dict(),
    )

    _process_projections()
    logger.info(
        "Journal entry %s reversed by %s as %s",
        original.entry_number, actor.display_name, reversal_entry_number,
    )
    original = JournalEntry.objects.filter(public_id=original.public_id).first()
    reversal = JournalEntry.objects.filter(
        public_id=event_posted.data.get("entry_public_id", reversal_public_id)
    ).first()
    return CommandResult.ok({
        "original": original,
        "reversal": reversal,
    }, event=event_reversed)


@transaction.atomic
def delete_journal_entry(actor: ActorContext, entry_id: int) -> CommandResult:
    """
    Delete a journal entry.

    Only MANUAL entries in DRAFT status can be deleted. Automatic
    entries fail with AUTO_ENTRY_IMMUTABLE; posted or reversed manual
    entries fail with POSTED_ENTRY_IMMUTABLE and must be reversed.

    Returns:
        CommandResult with deletion confirmation or error
    """
    require(actor, "accounting.delete_journalentry")

    try:
        entry = JournalEntry.objects.select_for_update().get(pk=entry_id)
    except JournalEntry.DoesNotExist:
        return CommandResult.from_code(ErrorCode.ENTRY_NOT_FOUND)

    aggregate = load_journal_entry_aggregate(str(entry.public_id))
    if not aggregate or aggregate.deleted:
        return CommandResult.from_code(ErrorCode.ENTRY_NOT_FOUND)

    allowed, error_code = can_delete_entry(aggregate)
    if not allowed:
        logger.info("Refused to delete journal entry %s: %s", entry.entry_number, error_code.value)
        return CommandResult.from_code(
            error_code,
            entry_number=entry.entry_number,
            entry_type=aggregate.entry_type,
            status=aggregate.status,
        )

    event = emit_event(
        actor=actor,
        event_type=EventTypes.JOURNAL_ENTRY_DELETED,
        aggregate_type="JournalEntry",
        aggregate_id=str(entry.public_id),
        idempotency_key=f"journal_entry.deleted:{entry.public_id}",
        data=JournalEntryDeletedData(
            entry_public_id=str(entry.public_id),
            entry_number=entry.entry_number,
            date=aggregate.date or entry.date.isoformat(),
            status=aggregate.status,
        ).to_dict(),
    )

    _process_projections()
    logger.info("Journal entry %s deleted by %s", entry.entry_number, actor.display_name)
    return CommandResult.ok({"deleted": True, "entry_number": entry.entry_number}, event=event)

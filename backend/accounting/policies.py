# accounting/policies.py
"""
Business policy functions for accounting operations.

Policies answer: "Is this action allowed given the current state?"
They do NOT perform the action. That's the command's job.

Workflow rules (status transitions, protection of system accounts and
automatic entries) are enforced HERE, NOT in model.save() methods.
Model.save() only enforces TRUE INVARIANTS.

Usage:
    from accounting.policies import can_post_entry

    allowed, code = can_post_entry(entry)
    if not allowed:
        return CommandResult.from_code(code)

Design Principles:
1. Policies are pure functions (no side effects)
2. Policies return (bool, ErrorCode | None) tuples
3. Policies check ONE thing conceptually
4. Commands compose policies as needed
"""

from decimal import Decimal
from typing import Optional

from accounting.errors import ErrorCode


PolicyDecision = tuple[bool, Optional[ErrorCode]]

SYSTEM_LOCKED_FIELDS = ("code", "account_type", "normal_balance")


# =============================================================================
# Account Policies
# =============================================================================

def can_use_category(account_type: str, category: str) -> PolicyDecision:
    """Category must belong to the closed set of its account type."""
    from accounting.models import Account

    if not Account.is_category_allowed(account_type, category):
        return False, ErrorCode.INVALID_CATEGORY_FOR_TYPE
    return True, None


def can_use_normal_balance(account_type: str, normal_balance: Optional[str]) -> PolicyDecision:
    """A supplied normal balance must agree with the one fixed by the type."""
    from accounting.models import Account

    if normal_balance and normal_balance != Account.normal_balance_for(account_type):
        return False, ErrorCode.NORMAL_BALANCE_MISMATCH
    return True, None


def can_change_account_fields(account, changed_fields) -> PolicyDecision:
    """
    Check which fields of an account may change.

    Rules:
    - System accounts keep their code, type and normal balance
    - The type of an account with journal lines cannot change
    """
    if account.is_system and set(changed_fields) & set(SYSTEM_LOCKED_FIELDS):
        return False, ErrorCode.SYSTEM_ACCOUNT_LOCKED

    if "account_type" in changed_fields and account.journal_lines.exists():
        return False, ErrorCode.ACCOUNT_IN_USE

    return True, None


def can_delete_account(account) -> PolicyDecision:
    """
    Check if an account can be deleted.

    Rules, in order:
    - Balance must be zero
    - Cannot be a system account
    - Cannot be referenced by any journal line
    """
    if account.get_balance() != Decimal("0"):
        return False, ErrorCode.ACCOUNT_HAS_BALANCE

    if account.is_system:
        return False, ErrorCode.SYSTEM_ACCOUNT_PROTECTED

    if account.journal_lines.exists():
        return False, ErrorCode.ACCOUNT_IN_USE

    return True, None


def can_post_to_account(account) -> PolicyDecision:
    """Inactive accounts cannot receive journal lines."""
    if not account.is_active:
        return False, ErrorCode.ACCOUNT_INACTIVE
    return True, None


# =============================================================================
# Journal Entry Policies
# =============================================================================

def can_post_entry(entry) -> PolicyDecision:
    """
    Check if a journal entry can be posted.

    `entry` may be the read model or the replayed aggregate.
    """
    from accounting.models import JournalEntry

    if entry.status != JournalEntry.Status.DRAFT:
        return False, ErrorCode.ENTRY_ALREADY_POSTED
    return True, None


def can_reverse_entry(entry) -> PolicyDecision:
    """
    Check if a journal entry can be reversed.

    Rules:
    - Must not already be reversed
    - Must be in POSTED status
    - Must not itself be a reversal
    """
    from accounting.models import JournalEntry

    if entry.status == JournalEntry.Status.REVERSED or getattr(entry, "reversed", False):
        return False, ErrorCode.ENTRY_ALREADY_REVERSED

    if entry.status != JournalEntry.Status.POSTED:
        return False, ErrorCode.ENTRY_NOT_POSTED

    if getattr(entry, "reverses_entry_public_id", None):
        return False, ErrorCode.REVERSAL_NOT_REVERSIBLE

    return True, None


def can_delete_entry(entry) -> PolicyDecision:
    """
    Check if a journal entry can be deleted.

    Rules:
    - Only MANUAL entries; automatic journals belong to their source document
    - Only DRAFT entries; posted facts are corrected by reversal
    """
    from accounting.models import JournalEntry

    if entry.entry_type != JournalEntry.EntryType.MANUAL:
        return False, ErrorCode.AUTO_ENTRY_IMMUTABLE

    if entry.status != JournalEntry.Status.DRAFT:
        return False, ErrorCode.POSTED_ENTRY_IMMUTABLE

    return True, None

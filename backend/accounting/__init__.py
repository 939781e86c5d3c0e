# accounting/__init__.py
"""
Accounting app - Double-entry bookkeeping for the Dapur ledger.

This app provides:
- Account: Chart of Accounts with type-bound categories
- JournalEntry: Double-entry bookkeeping entries
- JournalLine: Debit/credit lines
- NumberSequence: Transactional entry numbering

Commands handle all mutations to ensure events are emitted.
"""

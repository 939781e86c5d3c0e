# events/__init__.py
"""
Events app - Event sourcing infrastructure for the Dapur ledger.

This app provides:
- BusinessEvent: Immutable event records
- EventBookmark: Consumer progress tracking
- emit_event: the single emission entry point
- Event type definitions with CANONICAL SCHEMAS

The event schemas in events/types.py are THE CONTRACT.
All events are validated at emission time unless
settings.DISABLE_EVENT_VALIDATION is on.
"""

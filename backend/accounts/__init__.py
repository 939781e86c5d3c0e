# accounts/__init__.py
"""
Accounts app - Authorization for the Dapur ledger.

Users are Django's auth users. This app provides the ActorContext
pattern: views resolve an actor from the request, commands check
permissions against it and stamp it onto emitted events.
"""

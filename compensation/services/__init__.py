"""
Services.

Import concrete services from their modules, e.g.
``from compensation.services.ledger import LedgerService``.
"""

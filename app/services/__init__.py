"""Services Layer — cart, checkout, order and webhook handlers over DB + Rye.

Invariants:
    - Services orchestrate core/ rules with the DB session and the Rye client
    - Every write that reserves quantity locks the need row first (NeedLedger)

Design Decisions:
    - One handler class per resource, constructed per request by the route
    - Shared queries live in small helpers (cart_mirror, need_ledger, shopper_cart)
"""

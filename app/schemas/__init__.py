"""Pydantic Schemas — request validation for the cart, order and need endpoints.

Invariants:
    - Schemas validate at system boundary (shopper input, Rye callbacks)
    - Domain types from core/ used for enum fields

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
    - Responses are the augmented Rye cart (an open dict), so only requests are typed
"""

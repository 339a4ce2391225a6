"""Pydantic Schemas — validation for API request bodies and the model's extract payload.

Invariants:
    - Schemas validate at system boundary (user input, model output)
    - Domain types from core/ used for enum fields

Design Decisions:
    - Separate from core/ dataclasses: schemas are wire contracts, core values are
      the domain (ADR: DDD boundary)
"""

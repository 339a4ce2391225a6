"""Services Layer — space store, stream assembly, and conversation orchestration.

Invariants:
    - Services own all IO and mutable state; core/ functions they call stay pure
    - SpaceStore.dispatch is the only path that replaces a space snapshot

Design Decisions:
    - One service per concern for locality (ADR: ExMA no god objects)
"""

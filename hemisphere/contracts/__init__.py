"""
Contracts Module

Explicit data types passed between the layers of the hemisphere engine.
No layer may import implementation details from another layer; they talk
through these types only.

DESIGN PRINCIPLES:
==================
1. All contract types are immutable (frozen dataclasses)
2. Failures are explicit (ErrorCode, Error, Result)
3. Loosely typed source records are validated once, into fragments
4. Node and edge identity are deterministic hashes of their content
"""

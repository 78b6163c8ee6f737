"""Mock third-party services — in-memory stores used when USE_MOCKS is on.

Invariants:
    - Each store is a process-wide singleton with reset()
    - Output shapes mirror the real provider payloads the app consumes
"""

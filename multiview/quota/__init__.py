"""Credit quota package.

Module split:
    - `store`: immutable `QuotaState`, pure transitions, persisted `QuotaStore`.
    - `storage`: key-value persistence adapters (JSON file, in-memory).
"""

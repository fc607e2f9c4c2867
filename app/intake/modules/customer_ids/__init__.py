"""
Customer IDs module.

- Sequencer: pure next/validate functions for IDs like ``A-000a01``
- Issuance log: append-only table of every ID handed out, newest last
"""

"""
Bullion Kernel - multi-asset debt ledger

Obligations and settlements between a jewelry business and its vendors
and neighbour shops, denominated in pure gold, silver and cash:
- Balances derived on every read, never stored
- Over-settlement rejected, never clamped
- Edits and reversals kept as replayable history
- One writer per account
"""

__version__ = "0.1.0"

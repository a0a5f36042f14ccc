"""
Module: bullion_kernel.models.account
Responsibility: ORM persistence for vendor and neighbour-shop accounts --
    the counterparty every obligation and settlement belongs to.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - ``version`` is the mapper's version_id_col: every UPDATE of the row is
      conditioned on the version the session loaded, so a write made from a
      stale snapshot fails with StaleDataError.
    - ``entry_seq`` is a per-account counter; every ledger write on the
      account bumps it (and therefore the version) inside the same
      transaction, totally ordering entries that share a timestamp.

Failure modes:
    - AccountNotFoundError when a write references a missing account.
    - AccountHasObligationsError when deleting an account with history,
      unless cascade is requested.
"""

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from bullion_kernel.db.base import TrackedBase


class LedgerAccount(TrackedBase):
    """
    A vendor or neighbour shop we trade metal and cash with.

    Contract:
        metal_restriction decides which metal dimensions obligations on this
        account may carry; default_calc_mode is used when a request does not
        name one.

    Non-goals:
        - Balances are NOT stored here.  They are recomputed from
          obligations and settlements on every read.
    """

    __tablename__ = "ledger_accounts"

    __table_args__ = (
        Index("idx_ledger_account_kind", "kind"),
        Index("idx_ledger_account_name", "name"),
    )

    # VENDOR | SHOP
    kind: Mapped[str] = mapped_column(String(10), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # GOLD | SILVER | BOTH
    metal_restriction: Mapped[str] = mapped_column(String(10), nullable=False)

    # TOUCH | WASTAGE
    default_calc_mode: Mapped[str] = mapped_column(String(10), nullable=False)

    contact_person: Mapped[str | None] = mapped_column(String(255), nullable=True)

    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Last entry sequence handed out on this account
    entry_seq: Mapped[int] = mapped_column(default=0, nullable=False)

    version: Mapped[int] = mapped_column(nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def next_seq(self) -> int:
        """Hand out the next entry sequence.  Caller holds the row lock."""
        self.entry_seq = (self.entry_seq or 0) + 1
        return self.entry_seq

    def __repr__(self) -> str:
        return f"<LedgerAccount {self.kind} {self.name!r} v{self.version}>"

"""
AccountRegistry -- the chart of accounts.

Responsibility:
    Owns the set of accounts: lookup by id, code and (case-insensitive)
    name; creation with a synthetic type-prefixed code; atomic
    find-or-create for postings that auto-create party and convention
    accounts; retroactive updates.

Architecture position:
    Kernel > Services -- in-memory store, no I/O.

Invariants enforced:
    - Account ``code`` is unique; ``id`` and ``code`` never change.
    - Account name is unique after trimming and case-folding.
    - type/classification compatibility (re-checked on every update).
    - ``find_or_create`` is a single check-and-create under the registry
      lock, so two callers auto-creating the same name get one account.

Failure modes:
    - DuplicateAccountError on an explicit create/rename to a taken name.
    - InvalidClassificationError on an incompatible pair.
    - AccountNotFoundError from ``require_account`` / ``update_account`` /
      ``delete_account`` for unknown ids.

Audit relevance:
    The registry does not check journal references on delete; the ledger
    system refuses to delete referenced accounts before calling
    ``delete_account``.
"""

from __future__ import annotations

import threading
from typing import Iterable, Iterator

from books_kernel.domain.identity import AccountCodeGenerator, IdFactory, UuidIdFactory
from books_kernel.exceptions import AccountNotFoundError, DuplicateAccountError
from books_kernel.logging_config import get_logger
from books_kernel.models.account import (
    CODE_PREFIXES,
    Account,
    AccountClassification,
    AccountType,
    FinalAccountCategory,
    normalize_name,
)

logger = get_logger("services.account_registry")

_UPDATABLE_FIELDS = frozenset({
    "name",
    "account_type",
    "classification",
    "final_account_category",
    "description",
})


class AccountRegistry:
    """
    In-memory chart of accounts.

    Contract:
        Accounts are kept in insertion order.  All mutators hold the
        registry lock for their whole check-then-act sequence.
    """

    def __init__(
        self,
        id_factory: IdFactory | None = None,
        code_generator: AccountCodeGenerator | None = None,
    ):
        self._ids = id_factory or UuidIdFactory()
        self._codes = code_generator or AccountCodeGenerator()
        self._accounts: dict[str, Account] = {}
        self._lock = threading.RLock()

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def accounts(self) -> tuple[Account, ...]:
        return tuple(self._accounts.values())

    def __len__(self) -> int:
        return len(self._accounts)

    def __iter__(self) -> Iterator[Account]:
        return iter(self.accounts)

    def __contains__(self, account_id: object) -> bool:
        return account_id in self._accounts

    def get_account(self, account_id: str) -> Account | None:
        return self._accounts.get(account_id)

    def require_account(self, account_id: str) -> Account:
        account = self._accounts.get(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    def get_account_by_name(self, name: str) -> Account | None:
        """Lookup by trimmed, case-insensitive name."""
        key = normalize_name(name)
        for account in self._accounts.values():
            if account.name_key == key:
                return account
        return None

    def get_account_by_code(self, code: str) -> Account | None:
        for account in self._accounts.values():
            if account.code == code:
                return account
        return None

    def taken_codes(self) -> set[str]:
        return {a.code for a in self._accounts.values()}

    # =========================================================================
    # Creation
    # =========================================================================

    def build_account(
        self,
        name: str,
        account_type: AccountType,
        classification: AccountClassification,
        final_category: FinalAccountCategory | None = None,
        description: str | None = None,
        reserved_codes: Iterable[str] = (),
    ) -> Account:
        """
        Build an account record with a fresh id and code WITHOUT registering it.

        Posting plans use this for provisional accounts that only join the
        registry when the whole posting commits.  ``reserved_codes`` keeps
        codes of other provisional accounts in the same plan distinct.
        """
        taken = self.taken_codes() | set(reserved_codes)
        code = self._codes.generate(CODE_PREFIXES[account_type], taken)
        return Account(
            id=self._ids.new_id(),
            code=code,
            name=name.strip(),
            account_type=account_type,
            classification=classification,
            final_account_category=final_category,
            description=description,
        )

    def create_account(
        self,
        name: str,
        account_type: AccountType,
        classification: AccountClassification,
        final_category: FinalAccountCategory | None = None,
        description: str | None = None,
    ) -> Account:
        """Create and register a new account; the name must be unused."""
        with self._lock:
            existing = self.get_account_by_name(name)
            if existing is not None:
                raise DuplicateAccountError(name, existing.id)
            account = self.build_account(
                name, account_type, classification, final_category, description,
            )
            self._insert(account)
        logger.info("account_created", extra={
            "account_id": account.id,
            "account_code": account.code,
            "account_name": account.name,
            "account_type": account.account_type.value,
        })
        return account

    def find_or_create(
        self,
        name: str,
        account_type: AccountType,
        classification: AccountClassification,
        final_category: FinalAccountCategory | None = None,
    ) -> Account:
        """Return the account named ``name``, creating it if absent."""
        with self._lock:
            existing = self.get_account_by_name(name)
            if existing is not None:
                return existing
            return self.create_account(name, account_type, classification, final_category)

    def register(self, account: Account) -> Account:
        """Add a pre-built account (a committed provisional one, or a default)."""
        with self._lock:
            self._insert(account)
        logger.debug("account_registered", extra={
            "account_id": account.id,
            "account_code": account.code,
            "account_name": account.name,
        })
        return account

    def _insert(self, account: Account) -> None:
        existing = self.get_account_by_name(account.name)
        if existing is not None:
            raise DuplicateAccountError(account.name, existing.id)
        clash = self.get_account_by_code(account.code)
        if clash is not None or account.id in self._accounts:
            raise DuplicateAccountError(account.name, (clash or account).id)
        self._accounts[account.id] = account

    # =========================================================================
    # Mutation
    # =========================================================================

    def update_account(self, account_id: str, **changes: object) -> Account:
        """
        Merge ``changes`` into the account.

        Retroactive: reports are folds over history, so every past report
        reflects the new name and grouping.  ``id`` and ``code`` are fixed.
        """
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update account fields: {sorted(unknown)}")
        with self._lock:
            current = self.require_account(account_id)
            if "name" in changes:
                other = self.get_account_by_name(str(changes["name"]))
                if other is not None and other.id != account_id:
                    raise DuplicateAccountError(str(changes["name"]), other.id)
                changes["name"] = str(changes["name"]).strip()
            updated = current.with_changes(**changes)
            self._accounts[account_id] = updated
        logger.info("account_updated", extra={
            "account_id": account_id,
            "changed_fields": sorted(changes),
        })
        return updated

    def delete_account(self, account_id: str) -> Account:
        with self._lock:
            account = self.require_account(account_id)
            del self._accounts[account_id]
        logger.info("account_deleted", extra={
            "account_id": account_id,
            "account_name": account.name,
        })
        return account

    def replace_all(self, accounts: Iterable[Account]) -> None:
        """Swap the whole chart (import and reset). Uniqueness re-checked."""
        staged = AccountRegistry(self._ids, self._codes)
        for account in accounts:
            staged._insert(account)
        with self._lock:
            self._accounts = staged._accounts

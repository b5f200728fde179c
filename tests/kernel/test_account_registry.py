"""
Tests for AccountRegistry -- the in-memory chart of accounts.

Tests cover:
- Creation with synthetic codes per account type
- Case-insensitive, trimmed name uniqueness
- Type / classification compatibility
- Retroactive updates with fixed id and code
- Wholesale replacement re-checking uniqueness
"""

import random

import pytest

from books_kernel.domain.identity import AccountCodeGenerator, SequentialIdFactory
from books_kernel.exceptions import (
    AccountNotFoundError,
    DuplicateAccountError,
    InvalidClassificationError,
)
from books_kernel.models.account import (
    Account,
    AccountClassification,
    AccountType,
    FinalAccountCategory,
    NormalBalance,
)
from books_kernel.services.account_registry import AccountRegistry


@pytest.fixture
def registry() -> AccountRegistry:
    return AccountRegistry(SequentialIdFactory("acct"), AccountCodeGenerator(random.Random(7)))


class TestAccountCreation:
    """Creating accounts."""

    def test_code_prefix_follows_type(self, registry):
        expected = {
            AccountType.ASSET: ("1", AccountClassification.CURRENT_ASSET),
            AccountType.LIABILITY: ("2", AccountClassification.LOANS),
            AccountType.EQUITY: ("2", AccountClassification.OWNER_CAPITAL),
            AccountType.REVENUE: ("3", AccountClassification.INDIRECT_REVENUE),
            AccountType.EXPENSE: ("4", AccountClassification.INDIRECT_EXPENSE),
        }
        for account_type, (prefix, classification) in expected.items():
            account = registry.create_account(f"{account_type.value} one", account_type, classification)
            assert account.code.startswith(prefix)
            assert len(account.code) == 4
            assert 100 <= int(account.code[1:]) <= 998

    def test_codes_are_unique(self, registry):
        codes = {
            registry.create_account(
                f"Expense {i}", AccountType.EXPENSE, AccountClassification.INDIRECT_EXPENSE,
            ).code
            for i in range(50)
        }
        assert len(codes) == 50

    def test_name_is_trimmed(self, registry):
        account = registry.create_account(
            "  Rent A/c  ", AccountType.EXPENSE, AccountClassification.INDIRECT_EXPENSE,
        )
        assert account.name == "Rent A/c"

    def test_duplicate_name_case_insensitive(self, registry):
        registry.create_account("Rent A/c", AccountType.EXPENSE, AccountClassification.INDIRECT_EXPENSE)
        with pytest.raises(DuplicateAccountError):
            registry.create_account(" rent a/c ", AccountType.EXPENSE, AccountClassification.INDIRECT_EXPENSE)

    def test_incompatible_classification_rejected(self, registry):
        with pytest.raises(InvalidClassificationError):
            registry.create_account("Odd", AccountType.ASSET, AccountClassification.DIRECT_REVENUE)
        assert len(registry) == 0

    def test_normal_balance(self, registry):
        asset = registry.create_account("Machinery", AccountType.ASSET, AccountClassification.TANGIBLE_ASSET)
        loan = registry.create_account("Loan", AccountType.LIABILITY, AccountClassification.LOANS)
        assert asset.normal_balance == NormalBalance.DEBIT
        assert loan.normal_balance == NormalBalance.CREDIT

    def test_find_or_create_returns_existing(self, registry):
        first = registry.find_or_create("Ramesh", AccountType.ASSET, AccountClassification.SUNDRY_DEBTOR)
        second = registry.find_or_create("RAMESH", AccountType.ASSET, AccountClassification.SUNDRY_DEBTOR)
        assert first is second
        assert len(registry) == 1


class TestAccountLookup:

    def test_lookup_by_name_ignores_case_and_spaces(self, registry):
        account = registry.create_account("Wages A/c", AccountType.EXPENSE, AccountClassification.DIRECT_EXPENSE)
        assert registry.get_account_by_name("  WAGES a/c") == account

    def test_require_unknown_raises(self, registry):
        with pytest.raises(AccountNotFoundError):
            registry.require_account("missing")

    def test_contains(self, registry):
        account = registry.create_account("Wages A/c", AccountType.EXPENSE, AccountClassification.DIRECT_EXPENSE)
        assert account.id in registry
        assert "missing" not in registry


class TestAccountUpdate:
    """Updates are retroactive and keep id and code."""

    def test_reclassify(self, registry):
        account = registry.create_account(
            "Freight", AccountType.EXPENSE, AccountClassification.DIRECT_EXPENSE, FinalAccountCategory.DIRECT,
        )
        updated = registry.update_account(
            account.id,
            classification=AccountClassification.INDIRECT_EXPENSE,
            final_account_category=FinalAccountCategory.INDIRECT,
        )
        assert updated.id == account.id
        assert updated.code == account.code
        assert registry.require_account(account.id).final_account_category == FinalAccountCategory.INDIRECT

    def test_code_cannot_change(self, registry):
        account = registry.create_account("Freight", AccountType.EXPENSE, AccountClassification.DIRECT_EXPENSE)
        with pytest.raises(ValueError):
            registry.update_account(account.id, code="9999")

    def test_rename_to_existing_name_rejected(self, registry):
        registry.create_account("Rent", AccountType.EXPENSE, AccountClassification.INDIRECT_EXPENSE)
        other = registry.create_account("Wages", AccountType.EXPENSE, AccountClassification.DIRECT_EXPENSE)
        with pytest.raises(DuplicateAccountError):
            registry.update_account(other.id, name="rent")

    def test_invalid_reclassification_rejected(self, registry):
        account = registry.create_account("Rent", AccountType.EXPENSE, AccountClassification.INDIRECT_EXPENSE)
        with pytest.raises(InvalidClassificationError):
            registry.update_account(account.id, classification=AccountClassification.LOANS)
        assert registry.require_account(account.id).classification == AccountClassification.INDIRECT_EXPENSE

    def test_plain_string_values_become_enums(self, registry):
        account = registry.create_account("Rent", AccountType.EXPENSE, AccountClassification.INDIRECT_EXPENSE)
        updated = registry.update_account(
            account.id,
            account_type="EXPENSE",
            classification="DIRECT_EXPENSE",
            final_account_category="DIRECT",
        )
        assert updated.account_type is AccountType.EXPENSE
        assert updated.classification is AccountClassification.DIRECT_EXPENSE
        assert updated.final_account_category is FinalAccountCategory.DIRECT
        assert updated.account_type.value == "EXPENSE"

    def test_unknown_string_value_rejected(self, registry):
        account = registry.create_account("Rent", AccountType.EXPENSE, AccountClassification.INDIRECT_EXPENSE)
        with pytest.raises(ValueError):
            registry.update_account(account.id, classification="PETTY_EXPENSE")
        assert registry.require_account(account.id).classification == AccountClassification.INDIRECT_EXPENSE


class TestReplaceAll:

    def test_replace_swaps_chart(self, registry):
        registry.create_account("Old", AccountType.EXPENSE, AccountClassification.INDIRECT_EXPENSE)
        new = Account(
            id="a-1", code="1500", name="New", account_type=AccountType.ASSET,
            classification=AccountClassification.CURRENT_ASSET,
        )
        registry.replace_all([new])
        assert registry.accounts == (new,)

    def test_replace_with_duplicate_codes_leaves_chart_untouched(self, registry):
        kept = registry.create_account("Kept", AccountType.EXPENSE, AccountClassification.INDIRECT_EXPENSE)
        clashing = [
            Account(id="a-1", code="1500", name="One", account_type=AccountType.ASSET,
                    classification=AccountClassification.CURRENT_ASSET),
            Account(id="a-2", code="1500", name="Two", account_type=AccountType.ASSET,
                    classification=AccountClassification.CURRENT_ASSET),
        ]
        with pytest.raises(DuplicateAccountError):
            registry.replace_all(clashing)
        assert registry.accounts == (kept,)

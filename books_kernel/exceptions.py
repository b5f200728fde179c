"""
Typed Exception Hierarchy for the Books Kernel.

===============================================================================
WHEN THE KERNEL RAISES
===============================================================================

Expected business-rule violations are NOT exceptions in this codebase.  An
unbalanced journal entry, an over-issue of stock or an empty invoice comes
back to the caller as a failed ``PostingResult`` carrying ``ValidationError``
records, and nothing is stored.

Exceptions are reserved for violations a correct caller should never
trigger:
  - referencing an account id that does not exist
  - deleting an account that journal lines still point at
  - creating an account whose name is already taken
  - pairing an account type with a classification it cannot carry
  - importing a document that is not a bookkeeping state at all

Every exception has a class-level ``code`` (machine-readable) and keeps its
context as attributes, so logs and callers never parse message strings:

    try:
        system.delete_account(account_id)
    except AccountReferencedError as e:
        notify(code=e.code, account=e.account_id, lines=e.line_count)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BooksKernelError (base)
    |
    +-- PostingError
    |   +-- UnbalancedEntryError
    |
    +-- AccountError
    |   +-- AccountNotFoundError
    |   +-- DuplicateAccountError
    |   +-- InvalidClassificationError
    |   +-- AccountReferencedError
    |
    +-- InventoryError
    |   +-- InventoryItemNotFoundError
    |   +-- InsufficientStockError
    |
    +-- DataImportError
        +-- MalformedDataError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                      | When Raised
-----------|---------------------------|----------------------------------------
Posting    | UNBALANCED_ENTRY          | Debits != Credits beyond tolerance
-----------|---------------------------|----------------------------------------
Account    | ACCOUNT_NOT_FOUND         | Account ID doesn't exist
           | DUPLICATE_ACCOUNT         | Name already used (case-insensitive)
           | INVALID_CLASSIFICATION    | Classification not valid for type
           | ACCOUNT_REFERENCED        | Can't delete, journal lines point at it
-----------|---------------------------|----------------------------------------
Inventory  | INVENTORY_ITEM_NOT_FOUND  | Item ID doesn't exist
           | INSUFFICIENT_STOCK        | Issue exceeds the item's balance
-----------|---------------------------|----------------------------------------
Import     | MALFORMED_DATA            | Import document failed validation

===============================================================================
"""


class BooksKernelError(Exception):
    """
    Base exception for all books kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "BOOKS_KERNEL_ERROR"


# Posting-related exceptions


class PostingError(BooksKernelError):
    """Base exception for posting-related errors."""

    code: str = "POSTING_ERROR"


class UnbalancedEntryError(PostingError):
    """Journal entry debits do not equal credits."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, debits: str, credits: str):
        self.debits = debits
        self.credits = credits
        super().__init__(f"Unbalanced entry: debits={debits}, credits={credits}")


# Account-related exceptions


class AccountError(BooksKernelError):
    """Base exception for account-related errors."""

    code: str = "ACCOUNT_ERROR"


class AccountNotFoundError(AccountError):
    """Account with given ID was not found."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account not found: {account_id}")


class DuplicateAccountError(AccountError):
    """An account with the same (case-insensitive) name already exists."""

    code: str = "DUPLICATE_ACCOUNT"

    def __init__(self, name: str, existing_id: str):
        self.name = name
        self.existing_id = existing_id
        super().__init__(f"Account name already exists: {name!r} ({existing_id})")


class InvalidClassificationError(AccountError):
    """Classification is not compatible with the account type."""

    code: str = "INVALID_CLASSIFICATION"

    def __init__(self, account_type: str, classification: str):
        self.account_type = account_type
        self.classification = classification
        super().__init__(
            f"Classification {classification} is not valid for "
            f"account type {account_type}"
        )


class AccountReferencedError(AccountError):
    """
    Account cannot be deleted because journal lines reference it.

    Deleting it would orphan history and silently change every report.
    """

    code: str = "ACCOUNT_REFERENCED"

    def __init__(self, account_id: str, line_count: int):
        self.account_id = account_id
        self.line_count = line_count
        super().__init__(
            f"Account {account_id} is referenced by {line_count} journal line(s)"
        )


# Inventory-related exceptions


class InventoryError(BooksKernelError):
    """Base exception for inventory-related errors."""

    code: str = "INVENTORY_ERROR"


class InventoryItemNotFoundError(InventoryError):
    """Inventory item with given ID was not found."""

    code: str = "INVENTORY_ITEM_NOT_FOUND"

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Inventory item not found: {item_id}")


class InsufficientStockError(InventoryError):
    """Requested issue quantity exceeds the quantity on hand."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, item_name: str, available: str, requested: str):
        self.item_name = item_name
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for {item_name}: "
            f"available {available}, requested {requested}"
        )


# Import-related exceptions


class DataImportError(BooksKernelError):
    """Base exception for state import errors."""

    code: str = "DATA_IMPORT_ERROR"


class MalformedDataError(DataImportError):
    """Import document is structurally invalid or violates an invariant."""

    code: str = "MALFORMED_DATA"

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Malformed data at {path}: {reason}")

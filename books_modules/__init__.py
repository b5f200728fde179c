"""
Books Modules.

Thin layers over the kernel and engines:
- posting: business documents (subsidiary books, cash book, depreciation)
  to balanced posting plans
- reporting: ledgers, trial balance, trading / profit & loss, balance sheet

Modules read the stores but never write them; ``LedgerSystem`` in
books_services commits what they produce.
"""

"""Business logic for the stock ledger."""

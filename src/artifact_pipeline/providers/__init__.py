"""Cloud provider adapters (Azure only)."""
